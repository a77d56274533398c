from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from csop.core.dispatcher import Dispatcher


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def csop_config(tmp_path) -> Dict[str, Any]:
    return {"storage": {"db_path": str(tmp_path / "csop-storage.db")}}


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def dispatcher(csop_config, recording_sleep) -> Dispatcher:
    d = Dispatcher(sleep=recording_sleep)
    asyncio.run(d.init(csop_config))
    return d
