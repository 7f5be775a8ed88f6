"""Transaction coordinator with post-commit hooks."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from produce_orders.core.errors import PersistenceError
from produce_orders.core.logger import setup_logger
from produce_orders.core.monitoring import capture_exception
from produce_orders.core.tasks import track_task

logger = setup_logger(__name__)

PostCommitHook = Callable[[], Awaitable[None]]


class UnitOfWork:
    """
    One database transaction plus the side effects that follow its commit.

    Usage::

        async with UnitOfWork(session_factory) as uow:
            ...  # reads and writes through uow.session
            uow.after_commit("notify", hook)

    Leaving the block normally commits; any exception rolls back. Storage
    errors are re-raised as ``PersistenceError``. Hooks run only after a
    successful commit, as tracked background tasks whose failures are logged
    and captured but never propagated.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None
        self._hooks: List[Tuple[str, PostCommitHook]] = []

    def after_commit(self, name: str, hook: PostCommitHook) -> None:
        """Register a coroutine function to run once the transaction commits."""
        self._hooks.append((name, hook))

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        try:
            await self.session.begin()
        except SQLAlchemyError as e:
            await self.session.close()
            raise PersistenceError() from e
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                await self.session.rollback()
                self._hooks.clear()
                if isinstance(exc, SQLAlchemyError):
                    logger.error(f"Transaction rolled back on storage error: {exc}")
                    raise PersistenceError() from exc
                return False

            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                logger.error(f"Commit failed: {e}", exc_info=True)
                await self.session.rollback()
                self._hooks.clear()
                raise PersistenceError() from e
        finally:
            await self.session.close()

        self._dispatch_hooks()
        return False

    def _dispatch_hooks(self) -> None:
        hooks, self._hooks = self._hooks, []
        for name, hook in hooks:
            track_task(asyncio.create_task(self._run_hook(name, hook)))

    @staticmethod
    async def _run_hook(name: str, hook: PostCommitHook) -> None:
        try:
            await hook()
        except Exception as e:
            logger.error(f"Post-commit hook '{name}' failed: {e}", exc_info=True)
            capture_exception(e, context={"hook": name})
