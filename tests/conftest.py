import pytest

from voting_node.client import VotingClient
from voting_node.config import load_config
from voting_node.crypto_utils import Keypair
from voting_node.voting_executor import VotingExecutor

AIRDROP = 2_000_000_000


@pytest.fixture
def cfg(tmp_path):
    """Config isolated to tmp_path (no yaml file, json persistence)."""
    return load_config(
        str(tmp_path / "missing.yaml"),
        overrides={"persistence": {"driver": "json", "data_dir": str(tmp_path / "data")}},
    )


@pytest.fixture
def executor(cfg):
    ex = VotingExecutor(cfg)
    yield ex
    ex.close()


@pytest.fixture
def owner(executor):
    kp = Keypair.generate()
    executor.airdrop(kp.public_key_hex, AIRDROP)
    return kp


@pytest.fixture
def voter(executor):
    kp = Keypair.generate()
    executor.airdrop(kp.public_key_hex, AIRDROP)
    return kp


@pytest.fixture
def owner_client(executor, owner):
    return VotingClient(executor, owner)


@pytest.fixture
def voter_client(executor, voter):
    return VotingClient(executor, voter)


@pytest.fixture
def initialized(owner_client):
    owner_client.initialize()
    return owner_client
