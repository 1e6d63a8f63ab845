"""
Read-only stats routes (same data as the chat commands, as JSON).
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from matchstats.api.dependencies import get_stats_engine
from matchstats.models import Match, Player, Side
from matchstats.services.commands import goals_per_game, win_rate
from matchstats.services.stats_engine import StatsEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


class PlayerStatsResponse(BaseModel):
    """Career stats of one player."""
    name: str
    goals: int
    assists: int
    own_goals: int
    games: int
    wins: int
    losses: int
    draws: int
    clean_sheets: int
    minutes_played: int
    current_streak: int
    best_streak: int
    win_rate: float
    goals_per_game: float

    @classmethod
    def from_player(cls, player: Player) -> "PlayerStatsResponse":
        return cls(
            name=player.name,
            goals=player.goals,
            assists=player.assists,
            own_goals=player.own_goals,
            games=player.games,
            wins=player.wins,
            losses=player.losses,
            draws=player.draws,
            clean_sheets=player.clean_sheets,
            minutes_played=player.minutes_played,
            current_streak=player.current_streak,
            best_streak=player.best_streak,
            win_rate=round(win_rate(player), 1),
            goals_per_game=round(goals_per_game(player), 2),
        )


class RankEntry(BaseModel):
    position: int
    name: str
    goals: int
    games: int


class RankResponse(BaseModel):
    players: List[RankEntry]
    count: int


class MatchPlayerEntry(BaseModel):
    name: str
    goals: int
    assists: int


class LastMatchResponse(BaseModel):
    id: int
    timestamp: Optional[str]
    score_red: int
    score_blue: int
    duration: int
    players: Dict[str, List[MatchPlayerEntry]]

    @classmethod
    def from_match(cls, match: Match) -> "LastMatchResponse":
        players: Dict[str, List[MatchPlayerEntry]] = {"red": [], "blue": []}
        for row in match.players:
            side = Side(row.team).name.lower()
            players[side].append(MatchPlayerEntry(
                name=row.player.name if row.player is not None else row.player_auth,
                goals=row.goals,
                assists=row.assists,
            ))
        return cls(
            id=match.id,
            timestamp=match.timestamp.isoformat() if match.timestamp else None,
            score_red=match.score_red,
            score_blue=match.score_blue,
            duration=match.duration or 0,
            players=players,
        )


@router.get("/players/{name}", response_model=PlayerStatsResponse)
async def get_player_stats(name: str, engine: StatsEngine = Depends(get_stats_engine)):
    """Career stats by display name (case-insensitive)."""
    player = await run_in_threadpool(engine.store.get_player_by_name, name)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player not found: {name}")
    return PlayerStatsResponse.from_player(player)


@router.get("/rank", response_model=RankResponse)
async def get_rank(
    limit: int = Query(10, ge=1, le=100, description="Number of players"),
    engine: StatsEngine = Depends(get_stats_engine),
):
    """Top scorers; ties go to the player with fewer games."""
    players = await run_in_threadpool(engine.store.top_players, limit)
    entries = [
        RankEntry(position=i, name=p.name, goals=p.goals, games=p.games)
        for i, p in enumerate(players, start=1)
    ]
    return RankResponse(players=entries, count=len(entries))


@router.get("/matches/last", response_model=LastMatchResponse)
async def get_last_match(engine: StatsEngine = Depends(get_stats_engine)):
    """Most recent match with its participants."""
    match = await run_in_threadpool(engine.store.last_match)
    if match is None:
        raise HTTPException(status_code=404, detail="No matches recorded")
    return LastMatchResponse.from_match(match)
