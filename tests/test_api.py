# tests/test_api.py

import pytest
from fastapi.testclient import TestClient

from voting_node.client import build_create_proposal, build_initialize, build_vote
from voting_node.crypto_utils import Keypair
from voting_node.voting_api import create_app
from voting_node.voting_runtime.addresses import vote_record_address


@pytest.fixture
def api(executor):
    return TestClient(create_app(executor=executor))


def _submit(api, env):
    return api.post("/tx/submit", json={"tx": env.to_dict()})


def test_health_and_program(api, executor):
    r = api.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True

    info = api.get("/program").json()
    assert info["program_id"] == executor.program_id.hex()
    assert info["chain_id"] == executor.domain.chain_id
    assert info["config_address"] == executor.config_address_hex


def test_airdrop_and_balance(api):
    pk = Keypair.generate().public_key_hex
    r = api.post("/dev/airdrop", json={"pubkey": pk, "lamports": 5000})
    assert r.status_code == 200
    assert r.json()["balance"] == 5000
    assert api.get(f"/balance/{pk}").json()["lamports"] == 5000


def test_airdrop_validation(api, executor):
    pk = Keypair.generate().public_key_hex
    assert api.post("/dev/airdrop", json={"pubkey": "beef", "lamports": 1}).status_code == 400
    assert api.post("/dev/airdrop", json={"pubkey": pk, "lamports": 0}).status_code == 422
    too_much = executor.config["dev"]["max_airdrop_lamports"] + 1
    assert api.post("/dev/airdrop", json={"pubkey": pk, "lamports": too_much}).status_code == 400


def test_airdrop_disabled(api, executor):
    executor.config["dev"]["faucet_enabled"] = False
    pk = Keypair.generate().public_key_hex
    assert api.post("/dev/airdrop", json={"pubkey": pk, "lamports": 1}).status_code == 403
    # reads still work
    assert api.get(f"/balance/{pk}").json()["lamports"] == 0


def test_config_not_initialized(api):
    assert api.get("/config").status_code == 404
    assert api.get("/proposals").json() == []
    assert api.get("/proposals/0").status_code == 404


def test_full_flow_over_http(api, executor, owner, voter):
    r = _submit(api, build_initialize(executor.domain, owner))
    assert r.status_code == 200
    body = api.get("/config").json()
    assert body["owner"] == owner.public_key_hex
    assert body["total_proposals"] == 0

    r = _submit(api, build_create_proposal(executor.domain, owner, "Primera", 0))
    assert r.status_code == 200
    assert r.json()["return"] == 0

    r = _submit(api, build_create_proposal(executor.domain, voter, "Hack", 1))
    assert r.status_code == 400
    assert "Only the owner can create proposals" in r.json()["detail"]
    assert api.get("/config").json()["total_proposals"] == 1

    vote = build_vote(executor.domain, voter, 0)
    r = _submit(api, vote)
    assert r.status_code == 200
    status = api.get(f"/tx/{vote.tx_id}").json()
    assert status["found"] is True
    assert status["receipt"]["ok"] is True

    r = _submit(api, build_vote(executor.domain, voter, 0))
    assert r.status_code == 400
    assert "already in use" in r.json()["detail"]

    p = api.get("/proposals/0").json()
    assert (p["id"], p["title"], p["votes"]) == (0, "Primera", 1)
    assert [x["id"] for x in api.get("/proposals").json()] == [0]

    voted = api.get(f"/proposals/0/votes/{voter.public_key_hex}").json()
    assert voted["voted"] is True
    voted = api.get(f"/proposals/0/votes/{owner.public_key_hex}").json()
    assert voted["voted"] is False

    names = [e["name"] for e in api.get("/events").json()["events"]]
    assert names == ["ProposalCreated", "VoteCast"]


def test_bad_inputs(api):
    assert api.get("/proposals/-1").status_code == 422
    assert api.get("/proposals/0/votes/nothex").status_code == 400
    assert api.get("/tx/unknown").json() == {"ok": True, "found": False}
    assert api.get("/events?limit=0").status_code == 422


def test_tampered_envelope_rejected(api, executor, owner):
    env = build_initialize(executor.domain, owner)
    env.signatures = {}
    r = _submit(api, env)
    assert r.status_code == 400
    assert "signature" in r.json()["detail"]
    assert api.get("/config").status_code == 404


def test_airdrop_to_vote_record_is_not_a_vote(api, executor, owner, voter):
    _submit(api, build_initialize(executor.domain, owner))
    _submit(api, build_create_proposal(executor.domain, owner, "Primera", 0))
    record = vote_record_address(0, voter.public_key, executor.program_id).hex()
    api.post("/dev/airdrop", json={"pubkey": record, "lamports": 1})

    assert api.get(f"/proposals/0/votes/{voter.public_key_hex}").json()["voted"] is False
    assert _submit(api, build_vote(executor.domain, voter, 0)).status_code == 200
    assert api.get(f"/proposals/0/votes/{voter.public_key_hex}").json()["voted"] is True
