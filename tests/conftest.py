import calendar
import hashlib
import importlib.util
from datetime import datetime, timedelta
from pathlib import Path

import contracting
import pytest
from contracting.client import ContractingClient
from contracting.compilation import whitelists
from contracting.stdlib.bridge.time import Datetime

PROJECT_ROOT = Path(__file__).resolve().parents[1]
LEDGER_PATH = PROJECT_ROOT / "con_confidential_stablecoin.py"
FHE_PATH = PROJECT_ROOT / "con_fhe_plain.py"
HELPER_PATH = PROJECT_ROOT / "client_helper.py"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)

LEDGER_NAME = "con_confidential_stablecoin"
FHE_NAME = "con_fhe_plain"

GENESIS = datetime(2025, 1, 1)


def block_time(offset_seconds=0):
    moment = GENESIS + timedelta(seconds=offset_seconds)
    return Datetime(
        moment.year,
        moment.month,
        moment.day,
        hour=moment.hour,
        minute=moment.minute,
        second=moment.second,
    )


def unix_seconds(offset_seconds=0):
    moment = GENESIS + timedelta(seconds=offset_seconds)
    return calendar.timegm(moment.timetuple())


@pytest.fixture(scope="session", autouse=True)
def enable_sha3_and_whitelist():
    whitelists.ALLOWED_BUILTINS.update({"hashlib"})

    if not hasattr(hashlib, "sha3"):
        def _sha3(data):
            if isinstance(data, str):
                data = data.encode("utf-8")
            return hashlib.sha3_256(data).hexdigest()

        setattr(hashlib, "sha3", _sha3)


@pytest.fixture(scope="session")
def helper_module():
    spec = importlib.util.spec_from_file_location("client_helper_tests", HELPER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def client():
    client = ContractingClient(signer="operator", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    return client


@pytest.fixture
def fhe(client):
    client.submit(FHE_PATH.read_text(), name=FHE_NAME, owner=None)
    return client.get_contract(FHE_NAME)


@pytest.fixture
def deploy_ledger(client, fhe):
    code = LEDGER_PATH.read_text()

    def deploy(name=LEDGER_NAME):
        client.submit(
            code,
            name=name,
            owner=None,
            constructor_args={"fhe_contract": FHE_NAME},
        )
        return client.get_contract(name)

    return deploy


@pytest.fixture
def contract(deploy_ledger):
    return deploy_ledger()


@pytest.fixture
def plaintext(fhe):
    # Test-only peek behind a handle of the plaintext backend
    def read(handle):
        return fhe.values[handle]["value"]

    return read


@pytest.fixture
def at():
    def env(offset_seconds=0):
        return {"now": block_time(offset_seconds)}

    return env


@pytest.fixture
def epoch():
    return unix_seconds
