from functools import lru_cache

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.db.session import get_db
from gatepass.core.db.repo.workflow.workflow_repo import SqlWorkflowStore
from gatepass.core.notify.email_service import EmailNotificationService
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.utils.helper.paginate import MAX_PAGE_SIZE


def PageSizeQuery(default: int = 20, max_value: int = MAX_PAGE_SIZE):
    def _page_size(page_size: int = Query(default, ge=1, le=max_value)):
        return page_size
    return _page_size


def get_store(db: AsyncSession = Depends(get_db)) -> SqlWorkflowStore:
    return SqlWorkflowStore(db)


@lru_cache
def get_notifier() -> EmailNotificationService:
    return EmailNotificationService()


def get_engine(
    store: SqlWorkflowStore = Depends(get_store),
    notifier: EmailNotificationService = Depends(get_notifier),
) -> WorkflowEngine:
    return WorkflowEngine(store, notifier)
