import asyncio
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Ensure project root is on path
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


class FakeCollectionGateway:
    """Async list endpoint that echoes the query back in its rows.

    ``gates[n]`` holds the n-th call (0-based) until the event is set, which
    lets a test finish a later request before an earlier one.
    """

    def __init__(self, total: int = 25):
        self.total = total
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.gates: Dict[int, asyncio.Event] = {}
        self.fail: Optional[Exception] = None
        self.failures: Dict[int, Exception] = {}

    async def fetch_collection(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        index = len(self.calls)
        self.calls.append((path, dict(params)))
        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()
        fail = self.failures.get(index, self.fail)
        if fail is not None:
            raise fail
        row = {
            "id": params["page"],
            "first_name": params.get("search", ""),
            "last_name": "Doe",
            "is_applied": "1",
        }
        return {"data": [row], "total": self.total}


@pytest.fixture()
def collection_gateway():
    return FakeCollectionGateway()


async def drain_tasks() -> None:
    """Wait for every other task on the running loop."""
    current = asyncio.current_task()
    pending = [t for t in asyncio.all_tasks() if t is not current]
    while pending:
        await asyncio.gather(*pending)
        pending = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
