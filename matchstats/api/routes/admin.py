"""
Admin routes: destructive maintenance and backups.

Every route requires admin basic auth. Deletes are backup-guarded by the
store; a failed backup is reported as 500 and nothing is deleted.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from matchstats.api.dependencies import get_stats_engine
from matchstats.core.auth import require_admin
from matchstats.core.exceptions import BackupNotFoundError, RestoreNotAllowedError, StatsError
from matchstats.services.stats_engine import StatsEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class BackupResponse(BaseModel):
    name: str
    size: int
    created_at: str


class BackupListResponse(BaseModel):
    backups: List[BackupResponse]
    count: int


class CreateBackupRequest(BaseModel):
    reason: str = Field("manual", max_length=40, description="Short label added to the backup name")


class ClearStatsResponse(BaseModel):
    status: str
    backup: BackupResponse


class PurgeResponse(BaseModel):
    status: str
    purged: int


class DeletePlayerResponse(BaseModel):
    status: str
    name: str


class RestoreResponse(BaseModel):
    status: str
    restored: str
    safety_backup: BackupResponse


def _http_error(e: StatsError) -> HTTPException:
    """Map engine errors to HTTP status codes (backup and restore failures are 500)."""
    if isinstance(e, RestoreNotAllowedError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, BackupNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("/clear-stats", response_model=ClearStatsResponse)
async def clear_stats(engine: StatsEngine = Depends(get_stats_engine)):
    """Delete all players and matches (after a full backup)."""
    try:
        backup = await run_in_threadpool(engine.clear_all_stats)
    except StatsError as e:
        logger.error(f"Clear stats failed: {e}")
        raise _http_error(e)
    return ClearStatsResponse(status="cleared", backup=BackupResponse(**backup.to_dict()))


@router.post("/purge-synthetic", response_model=PurgeResponse)
async def purge_synthetic(engine: StatsEngine = Depends(get_stats_engine)):
    """Delete synthetic (test) players and their match history."""
    try:
        count = await run_in_threadpool(engine.purge_synthetic_players)
    except StatsError as e:
        logger.error(f"Purge failed: {e}")
        raise _http_error(e)
    return PurgeResponse(status="purged", purged=count)


@router.delete("/players/{name}", response_model=DeletePlayerResponse)
async def delete_player(name: str, engine: StatsEngine = Depends(get_stats_engine)):
    """Delete one player and their match history."""
    try:
        found = await run_in_threadpool(engine.delete_player, name)
    except StatsError as e:
        logger.error(f"Delete player failed: {e}")
        raise _http_error(e)
    if not found:
        raise HTTPException(status_code=404, detail=f"Player not found: {name}")
    return DeletePlayerResponse(status="deleted", name=name)


@router.get("/backups", response_model=BackupListResponse)
async def list_backups(engine: StatsEngine = Depends(get_stats_engine)):
    """All backups, newest first."""
    backups = await run_in_threadpool(engine.list_backups)
    items = [BackupResponse(**b.to_dict()) for b in backups]
    return BackupListResponse(backups=items, count=len(items))


@router.post("/backups", response_model=BackupResponse, status_code=201)
async def create_backup(
    request: Optional[CreateBackupRequest] = None,
    engine: StatsEngine = Depends(get_stats_engine),
):
    """Take a manual backup."""
    reason = request.reason if request else "manual"
    try:
        backup = await run_in_threadpool(engine.create_backup, reason)
    except StatsError as e:
        logger.error(f"Manual backup failed: {e}")
        raise _http_error(e)
    return BackupResponse(**backup.to_dict())


@router.post("/backups/{name}/restore", response_model=RestoreResponse)
async def restore_backup(name: str, engine: StatsEngine = Depends(get_stats_engine)):
    """Replace the live database with a backup (refused while a match is running)."""
    try:
        safety = await run_in_threadpool(engine.restore_backup, name)
    except StatsError as e:
        logger.error(f"Restore of {name} failed: {e}")
        raise _http_error(e)
    return RestoreResponse(status="restored", restored=name, safety_backup=BackupResponse(**safety.to_dict()))
