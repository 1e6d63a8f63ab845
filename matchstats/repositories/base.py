"""
Base repository class for data access layer.

The repository pattern provides:
1. Separation of data access logic from match/stat logic
2. Single place for query logic (easier to maintain)
3. Easier testing (repositories work on any Session)

Repositories never commit: the caller owns the transaction (see
``StatsStore.session_scope``), so a match and all of its player updates
are committed or rolled back together.

Example:
    class PlayerRepository(BaseRepository[Player]):
        def find_by_auth(self, auth: str) -> Optional[Player]:
            return self.get(auth)
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, Any

from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        """
        Initialize the repository.

        Args:
            model_type: The SQLAlchemy model class
            db: The database session
        """
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def get(self, pk: Any) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.get(self.model_type, pk)

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (added to the session, not committed)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    # ========================================================================
    # Query Builders
    # ========================================================================

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    # ========================================================================
    # Session Operations
    # ========================================================================

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()
