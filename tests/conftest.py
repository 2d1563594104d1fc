import io
import logging
import os
import pathlib
import sys
from typing import Optional, Union

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import janecek`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from janecek.address import Address  # noqa: E402
from janecek.clock import FixedClock  # noqa: E402
from janecek.config import DEFAULT_PROGRAM_ID, ConfigManager  # noqa: E402
from janecek.instruction import (  # noqa: E402
    create_party,
    create_voter,
    get_owner_address,
    get_party_address,
    get_state_address,
    get_voter_address,
    initialize,
    vote_negative,
    vote_positive,
)
from janecek.observability import ROOT_LOGGER, StructuredHandler, configure_logging  # noqa: E402
from janecek.runtime import LocalRuntime  # noqa: E402
from janecek.signing import Keypair  # noqa: E402


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless JANECEK_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('JANECEK_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set JANECEK_RUN_SLOW=1 to enable'))


# Campaign start used throughout; matches the documented Initialize example.
T0 = 1000


class CampaignHarness:
    """An initialized campaign on a LocalRuntime plus shortcuts for the common calls."""

    def __init__(self, runtime: LocalRuntime, owner: Keypair):
        self.runtime = runtime
        self.owner = owner
        self.program_id = runtime.program_id
        self.owner_address, _ = get_owner_address(owner.address, self.program_id)
        self.state_address, _ = get_state_address(self.owner_address, self.program_id)

    def add_party(self, name: Union[str, bytes], author: Optional[Keypair] = None) -> Address:
        author = author or self.runtime.new_identity()
        ix = create_party(author.address, self.owner.address, name, self.program_id)
        self.runtime.execute(ix, author, self.owner)
        return self.party_address(name)

    def add_voter(self, voter: Optional[Keypair] = None) -> Keypair:
        voter = voter or self.runtime.new_identity()
        self.runtime.execute(create_voter(voter.address, self.owner.address, self.program_id), voter)
        return voter

    def vote(self, voter: Keypair, name: Union[str, bytes], positive: bool = True):
        builder = vote_positive if positive else vote_negative
        return self.runtime.execute(builder(voter.address, self.owner.address, name, self.program_id), voter)

    def party_address(self, name: Union[str, bytes]) -> Address:
        return get_party_address(name, self.state_address, self.program_id)[0]

    def voter_address(self, voter: Keypair) -> Address:
        return get_voter_address(voter.address, self.state_address, self.program_id)[0]

    def party(self, name: Union[str, bytes]):
        return self.runtime.record(self.party_address(name))

    def voter(self, voter: Keypair):
        return self.runtime.record(self.voter_address(voter))

    def state(self):
        return self.runtime.record(self.state_address)


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from default configuration."""
    ConfigManager.reset_instance()
    yield
    ConfigManager.reset_instance()


@pytest.fixture
def program_id() -> Address:
    return Address.from_base58(DEFAULT_PROGRAM_ID)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def runtime(clock) -> LocalRuntime:
    return LocalRuntime(clock=clock)


@pytest.fixture
def campaign(runtime) -> CampaignHarness:
    owner = runtime.new_identity()
    runtime.execute(initialize(owner.address, runtime.program_id), owner)
    return CampaignHarness(runtime, owner)


@pytest.fixture
def log_stream():
    """Capture structured log lines emitted by the janecek loggers."""
    stream = io.StringIO()
    handler = configure_logging(level="debug", fmt="json", stream=stream)
    yield stream
    root = logging.getLogger(ROOT_LOGGER)
    for h in list(root.handlers):
        if isinstance(h, StructuredHandler):
            root.removeHandler(h)
    root.setLevel(logging.NOTSET)
    root.propagate = True
    assert handler not in root.handlers
