"""
Audit Logger — Append-only trail of optimizer decisions and executed actions.
"""

import logging
from typing import Optional
from ads_optimizer.models import AgentAction

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, repo):
        self.repo = repo

    async def record(
        self,
        action_type: str,
        source: str,
        campaign_id: Optional[str] = None,
        campaign_name: Optional[str] = None,
        platform: Optional[str] = None,
        details: Optional[dict] = None,
        status: str = "success",
    ) -> AgentAction:
        log = logger.warning if status == "error" else logger.info
        log(f"[{source}] {action_type} {platform or '-'}:{campaign_id or '-'} ({status})")
        return await self.repo.add_agent_action(
            action_type=action_type,
            source=source,
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            platform=platform,
            status=status,
            details=details or {},
        )
