"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_recon.database import init_db
from payroll_recon.services import PayrollRunService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor(x_actor: Annotated[str | None, Header()] = None) -> str:
    """Caller identity recorded on audit events; defaults to 'system'."""
    return (x_actor or "").strip() or "system"


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Actor = Annotated[str, Depends(get_actor)]


async def get_payroll_run_service(db: DbSession) -> PayrollRunService:
    return PayrollRunService(db)


RunService = Annotated[PayrollRunService, Depends(get_payroll_run_service)]
