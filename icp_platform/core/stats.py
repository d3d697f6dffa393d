"""
Dashboard counts under the same visibility rules as the listings.
"""

from typing import Dict, Optional

from .approval import ApprovalWorkflow
from .schema import PARTNERS, PUBLIC_STATUSES, SOLUTIONS, Principal
from .store import IDocumentStore
from .visibility import merge_by_id, plan_visibility


class StatsService:

    def __init__(self, store: IDocumentStore, workflow: ApprovalWorkflow):
        self.store = store
        self.workflow = workflow

    async def _count_visible(self, collection: str, principal: Optional[Principal]) -> int:
        plans = plan_visibility(principal, None, PUBLIC_STATUSES[collection])
        if len(plans) == 1:
            return await self.store.count(collection, plans[0])
        return len(merge_by_id([await self.store.list(collection, plan) for plan in plans]))

    async def get_stats(self, principal: Optional[Principal]) -> Dict[str, int]:
        return {
            "solutions": await self._count_visible(SOLUTIONS, principal),
            "partners": await self._count_visible(PARTNERS, principal),
            "tickets": await self.workflow.count_visible(principal),
        }
