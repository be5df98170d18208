"""
Link store connection management.

``LinkStore`` owns the SQLite engine for one process: it is opened once,
used for any number of operations (each in its own transaction) and closed
when the process is done with it. Concurrent processes (an editor hook and a
git hook firing together) share the same file; every transaction starts
with ``BEGIN IMMEDIATE`` so writers serialize on the database lock instead
of failing on lock upgrade, and the busy timeout makes them wait.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event, inspect, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agentlinks.config import settings
from agentlinks.db.file_context import get_file_context
from agentlinks.db.repositories import (
    CommitRepository,
    ConversationRepository,
    LinkRepository,
)
from agentlinks.exceptions import StoreNotInitializedError
from agentlinks.linking.scoring import (
    AutoLinkScore,
    ScoringWeights,
    find_auto_link_candidates,
    record_auto_links,
)
from agentlinks.models.db import Base, Commit, Conversation, Link
from agentlinks.models.records import (
    CommitInput,
    ConversationUpsert,
    FileContext,
    LinkedCommit,
    LinkedConversation,
    LinkInput,
)

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def _json_dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def _install_sqlite_hooks(engine: Engine, busy_timeout_ms: int, wal: bool) -> None:
    """Take transaction control away from pysqlite and begin IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        # Stop pysqlite from emitting its own BEGIN; we emit ours below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
        if wal:
            cursor.execute("PRAGMA journal_mode = WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _add_missing_columns(engine: Engine) -> list[str]:
    """
    Bring an older store file up to the current schema.

    Schema changes are additive only: missing columns are added (nullable),
    nothing is dropped or altered.

    Returns:
        "table.column" names that were added
    """
    inspector = inspect(engine)
    added = []
    with engine.begin() as conn:
        for table in Base.metadata.sorted_tables:
            existing = {col["name"] for col in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing:
                    continue
                column_type = column.type.compile(dialect=engine.dialect)
                conn.exec_driver_sql(
                    f'ALTER TABLE "{table.name}" ADD COLUMN "{column.name}" {column_type}'
                )
                added.append(f"{table.name}.{column.name}")
    if added:
        logger.info("Added columns to link store: %s", ", ".join(added))
    return added


class LinkStore:
    """
    Process-scoped handle on the link store.

    Example:
        >>> with LinkStore() as store:
        ...     store.upsert_conversation(ConversationUpsert("c1", "cursor"))
        ...     links = store.get_links_for_conversation("c1")
    """

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        busy_timeout_seconds: Optional[float] = None,
        echo: bool = False,
    ):
        if db_path is None:
            self.db_path: str | Path = settings.links_db_path
        elif str(db_path) == MEMORY:
            self.db_path = MEMORY
        else:
            self.db_path = Path(db_path).expanduser()
        self.busy_timeout_seconds = (
            busy_timeout_seconds
            if busy_timeout_seconds is not None
            else settings.store_busy_timeout_seconds
        )
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "LinkStore":
        """
        Open the store, creating the file and schema on first use.

        Calling ``open()`` on an open store is a no-op.
        """
        if self._engine is not None:
            return self

        busy_ms = int(self.busy_timeout_seconds * 1000)
        if self.db_path == MEMORY:
            engine = create_engine(
                "sqlite://",
                echo=self.echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                json_serializer=_json_dumps,
            )
            _install_sqlite_hooks(engine, busy_ms, wal=False)
        else:
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                f"sqlite:///{path}",
                echo=self.echo,
                connect_args={
                    "check_same_thread": False,
                    "timeout": self.busy_timeout_seconds,
                },
                json_serializer=_json_dumps,
            )
            _install_sqlite_hooks(engine, busy_ms, wal=True)

        Base.metadata.create_all(bind=engine)
        _add_missing_columns(engine)

        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.debug("Opened link store at %s", self.db_path)
        return self

    def close(self) -> None:
        """Release the engine. Safe to call more than once."""
        if self._engine is not None:
            self._engine.dispose()
            logger.debug("Closed link store at %s", self.db_path)
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> "LinkStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self, operation: str) -> sessionmaker:
        if self._session_factory is None:
            raise StoreNotInitializedError(operation)
        return self._session_factory

    @contextmanager
    def session(self, operation: str = "session") -> Generator[Session, None, None]:
        """
        Transactional session: commits on success, rolls back and re-raises
        on error, always closes.

        Raises:
            StoreNotInitializedError: If the store is not open
        """
        factory = self._ensure_open(operation)
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            with self.session("check_connection") as db:
                db.execute(text("SELECT 1"))
            return True
        except StoreNotInitializedError:
            raise
        except Exception as e:
            logger.error("Link store connection failed: %s", e)
            return False

    # Conversations

    def upsert_conversation(self, data: ConversationUpsert) -> Conversation:
        with self.session("upsert_conversation") as db:
            return ConversationRepository(db).upsert(data)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self.session("get_conversation") as db:
            return ConversationRepository(db).get(conversation_id)

    def find_conversations(
        self,
        workspace_root: Optional[str] = None,
        project_name: Optional[str] = None,
        file: Optional[str] = None,
        agent: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Conversation]:
        with self.session("find_conversations") as db:
            return ConversationRepository(db).find(
                workspace_root=workspace_root,
                project_name=project_name,
                file=file,
                agent=agent,
                limit=limit,
            )

    # Commits

    def upsert_commit(self, data: CommitInput) -> Commit:
        with self.session("upsert_commit") as db:
            return CommitRepository(db).upsert(data)

    def get_commit(self, commit_hash: str) -> Optional[Commit]:
        with self.session("get_commit") as db:
            return CommitRepository(db).get(commit_hash)

    def find_commits(
        self,
        repo_path: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[Commit]:
        with self.session("find_commits") as db:
            return CommitRepository(db).find(
                repo_path=repo_path, since=since, until=until, limit=limit
            )

    # Links

    def upsert_link(self, data: LinkInput) -> Link:
        with self.session("upsert_link") as db:
            return LinkRepository(db).upsert(data)

    def get_link(self, conversation_id: str, commit_hash: str) -> Optional[Link]:
        with self.session("get_link") as db:
            return LinkRepository(db).get_pair(conversation_id, commit_hash)

    def get_links_for_conversation(self, conversation_id: str) -> list[LinkedCommit]:
        with self.session("get_links_for_conversation") as db:
            return LinkRepository(db).for_conversation(conversation_id)

    def get_links_for_commit(self, commit_hash: str) -> list[LinkedConversation]:
        with self.session("get_links_for_commit") as db:
            return LinkRepository(db).for_commit(commit_hash)

    # Queries

    def get_file_context(
        self,
        file_path: str,
        keywords: Optional[list[str]] = None,
        limit: int = 10,
    ) -> FileContext:
        with self.session("get_file_context") as db:
            return get_file_context(db, file_path, keywords=keywords, limit=limit)

    # Auto-linking

    def find_auto_link_candidates(
        self,
        commit_hash: str,
        window_days: Optional[float] = None,
        min_score: Optional[float] = None,
        weights: Optional[ScoringWeights] = None,
    ) -> list[AutoLinkScore]:
        with self.session("find_auto_link_candidates") as db:
            return find_auto_link_candidates(
                db, commit_hash, **_scoring_args(window_days, min_score, weights)
            )

    def record_auto_links(
        self, commit_hash: str, scores: list[AutoLinkScore]
    ) -> list[Link]:
        with self.session("record_auto_links") as db:
            return record_auto_links(db, commit_hash, scores)

    def auto_link_commit(
        self,
        commit_hash: str,
        window_days: Optional[float] = None,
        min_score: Optional[float] = None,
        weights: Optional[ScoringWeights] = None,
    ) -> list[AutoLinkScore]:
        """
        Score a stored commit and persist the resulting auto links in one
        transaction.

        Returns:
            The scores that were considered (manual pairs are kept as-is)
        """
        with self.session("auto_link_commit") as db:
            scores = find_auto_link_candidates(
                db, commit_hash, **_scoring_args(window_days, min_score, weights)
            )
            record_auto_links(db, commit_hash, scores)
            return scores


def _scoring_args(
    window_days: Optional[float],
    min_score: Optional[float],
    weights: Optional[ScoringWeights],
) -> dict:
    return {
        "window_days": (
            window_days if window_days is not None else settings.autolink_window_days
        ),
        "min_score": min_score if min_score is not None else settings.autolink_min_score,
        "weights": weights
        or ScoringWeights(
            file_overlap=settings.autolink_file_weight,
            recency=settings.autolink_recency_weight,
        ),
    }
