import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from memory_match.engine import GameEngine  # noqa: E402
from memory_match.scheduler import ManualScheduler  # noqa: E402
from memory_match.settings import GameSettings  # noqa: E402


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def make_engine(scheduler):
    created = []

    def _make(grid_size: int = 4, seed: int = 1234, start: bool = True, **kwargs) -> GameEngine:
        settings = GameSettings(grid_size=grid_size, seed=seed)
        engine = GameEngine(settings, scheduler=scheduler, **kwargs)
        if start:
            engine.start()
        created.append(engine)
        return engine

    yield _make
    for engine in created:
        engine.close()


@pytest.fixture()
def engine(make_engine) -> GameEngine:
    return make_engine()
