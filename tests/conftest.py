"""
Shared pytest fixtures.

Every test starts without any API key in the environment and with a fresh
assistant cache, so tests are fully isolated from each other and from a
developer's real .env.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

SAMPLE_ANSWER = """# 產品概覽
Sony WH-1000XM5 是 Sony 旗艦級無線降噪耳機。

# 價格分析
目前市場價格約 NT$9,990 至 NT$11,900。雙 11 期間常有折扣。

# 優點
- 降噪效果頂尖
- 佩戴舒適、重量輕
- 通話收音清楚
- 續航長達 30 小時

# 缺點
- 不能折疊收納
- 價格偏高

# 專家點評
PTT 鄉民普遍推薦，適合通勤族購買。
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import config
    for name in config.API_KEY_ENV_VARS + ("MODEL_CANDIDATES",):
        monkeypatch.delenv(name, raising=False)

    import providers.manager as manager_mod
    manager_mod.reset_assistant()
    yield
    manager_mod.reset_assistant()


@pytest.fixture
def sample_answer() -> str:
    return SAMPLE_ANSWER
