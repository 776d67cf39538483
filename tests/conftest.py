"""Shared test configuration."""

import os

# Keep the developer's own YOGA_* overrides out of the tests. Module-level
# defaults in yoga_client.session are read at import time, so
# this has to run before the package is imported.
for _key in [k for k in os.environ if k.startswith("YOGA_")]:
    del os.environ[_key]

import pytest

from yoga_client.config import CandidateLabel, EndpointCandidate
from yoga_client.endpoints import ConnectivityState
from yoga_client.session import TokenStore

from fakes import FALLBACK_URL, PRIMARY_URL, FakeTransport


@pytest.fixture
def candidates() -> tuple[EndpointCandidate, ...]:
    return (
        EndpointCandidate(CandidateLabel.PRIMARY, PRIMARY_URL, 0.2),
        EndpointCandidate(CandidateLabel.FALLBACK, FALLBACK_URL, 0.1),
    )


@pytest.fixture
def state(candidates) -> ConnectivityState:
    return ConnectivityState(candidates)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store() -> TokenStore:
    return TokenStore()
