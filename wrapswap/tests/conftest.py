"""
Pytest fixtures for wrapswap tests.
"""

import os

import pytest

from wrapswap.chain import Ledger
from wrapswap.transactions import SwapSimulation


TRACES_DIR = os.path.join(os.path.dirname(__file__), "..", "traces", "regression")


@pytest.fixture
def ledger():
    """A fresh ledger with alice and bob registered."""
    led = Ledger(current_time=1000.0)
    led.create_account("pk_alice")
    led.create_account("pk_bob")
    return led


@pytest.fixture
def sim():
    """A simulation with two funded owners and an unfunded intermediary."""
    s = SwapSimulation(admin="forge")
    s.create_account("alice", balance=5000)
    s.create_account("bob", balance=5000)
    s.create_account("intermediary")
    return s


@pytest.fixture
def swords(sim):
    """One asset each for alice (42, 7) and bob (34, 4)."""
    sword_a = sim.issue(42, 7, "alice")
    sword_b = sim.issue(34, 4, "bob")
    return sword_a, sword_b


@pytest.fixture
def traces_dir():
    return TRACES_DIR
