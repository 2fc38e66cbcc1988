import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

FULL_DASH_ID = "mock1"        # Alice
PARTIAL_DASH_ID = "mock2"     # Bob
CATHY_ID = "mock-cathy"       # Cathy
DEFAULT_ORG_ID = "org1"

NAME_BY_ID = {
    FULL_DASH_ID: "Mock Alice",
    PARTIAL_DASH_ID: "Mock Bob",
    CATHY_ID: "Mock Cathy",
}

SEED_PATH = Path(__file__).parent / "data" / "seed.json"


@lru_cache(maxsize=None)
def _load(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_seed(path: str | Path = SEED_PATH) -> Dict[str, Any]:
    """Demo data keyed by section; callers get their own copy to mutate."""
    return copy.deepcopy(_load(str(path)))


def seed_section(name: str) -> Any:
    return load_seed()[name]
