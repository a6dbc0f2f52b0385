"""
Health Check Service

Reports database reachability for load balancers and operators.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.shared.db.session import health_check as db_health_check

logger = structlog.get_logger()


class HealthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_database(self) -> tuple[bool, Dict[str, Any]]:
        status = await db_health_check(self.db)
        return status["status"] == "up", status

    async def check_all(self) -> Dict[str, Any]:
        db_ok, db_status = await self.check_database()
        if not db_ok:
            logger.warning("health_check_degraded", component="database")
        return {
            "status": "healthy" if db_ok else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": db_status,
        }
