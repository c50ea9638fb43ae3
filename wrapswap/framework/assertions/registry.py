"""
Assertion Handler Registry

Maps assertion types to their evaluation functions.
"""

from typing import Callable, Dict, Any

from ...chain.types import EscrowWrapper


# Type for assertion handlers
# Handler(assertion_params, simulation_state) -> (passed, message)
AssertionHandler = Callable[[Dict[str, Any], Dict[str, Any]], tuple]


# Global registry of assertion handlers
ASSERTION_HANDLERS: Dict[str, AssertionHandler] = {}


def register_assertion_handler(assertion_type: str):
    """
    Decorator to register an assertion handler.

    Usage:
        @register_assertion_handler("asset_owner")
        def check_asset_owner(params, state):
            ...
            return (True, "Asset is owned by alice")
    """
    def decorator(func: AssertionHandler) -> AssertionHandler:
        ASSERTION_HANDLERS[assertion_type] = func
        return func
    return decorator


def _resolve(state: Dict[str, Any], label: str) -> str:
    """Map a trace binding label to the object ID it was bound to."""
    return state.get("bindings", {}).get(label, label)


# =============================================================================
# Built-in Assertion Handlers
# =============================================================================

@register_assertion_handler("asset_owner")
def check_asset_owner(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check that an asset is owned by a named account.

    Params:
        asset: Binding label (or ID) of the asset
        owner: Expected owner account name

    State:
        sim: The SwapSimulation the trace ran against
    """
    sim = state["sim"]
    asset_id = _resolve(state, params.get("asset"))
    expected = params.get("owner")

    actual = sim.owner_name(asset_id)
    if actual == expected:
        return (True, f"Asset {params.get('asset')} is owned by {expected}")
    return (False, f"Asset {params.get('asset')} is owned by {actual}, expected {expected}")


@register_assertion_handler("asset_attributes")
def check_asset_attributes(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check the (magic, strength) pairs of every asset an account owns.

    Params:
        account: Account name
        expected: List of [magic, strength] pairs, in any order
    """
    sim = state["sim"]
    account = params.get("account")
    expected = sorted(tuple(pair) for pair in params.get("expected", []))

    actual = sim.attributes(account)
    if actual == expected:
        return (True, f"{account} holds {actual}")
    return (False, f"{account} holds {actual}, expected {expected}")


@register_assertion_handler("fee_balance")
def check_fee_balance(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check an account's fee balance.

    Params:
        account: Account name
        expected: Expected balance in minor units
    """
    sim = state["sim"]
    account = params.get("account")
    expected = params.get("expected")

    actual = sim.balance(account)
    if actual == expected:
        return (True, f"{account} balance is {actual}")
    return (False, f"{account} balance is {actual}, expected {expected}")


@register_assertion_handler("issued_count")
def check_issued_count(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check the issuer's count of issued assets.

    Params:
        expected: Expected count
    """
    sim = state["sim"]
    expected = params.get("expected")

    actual = sim.registry.issued_count
    if actual == expected:
        return (True, f"Issued count is {actual}")
    return (False, f"Issued count is {actual}, expected {expected}")


@register_assertion_handler("wrapper_state")
def check_wrapper_state(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check that a wrapper is in the expected state.

    Params:
        wrapper: Binding label (or ID) of the wrapper
        expected_state: The expected state name (e.g., "CONSUMED")
    """
    sim = state["sim"]
    wrapper_id = _resolve(state, params.get("wrapper"))
    expected = params.get("expected_state")

    actual = sim.escrow.wrapper_state(wrapper_id).name
    if actual == expected:
        return (True, f"Wrapper {params.get('wrapper')} is {expected}")
    return (False, f"Wrapper {params.get('wrapper')} is {actual}, expected {expected}")


@register_assertion_handler("no_pending_wrappers")
def check_no_pending_wrappers(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check that nobody holds a wrapper that still has to be executed.

    Params:
        account: Optional account name to restrict the check to
    """
    sim = state["sim"]
    account = params.get("account")
    names = [account] if account else list(sim.accounts)

    pending = []
    for name in names:
        pending.extend(w.wrapper_id for w in sim.ledger.objects_owned_by(sim.address(name), EscrowWrapper))
    if not pending:
        return (True, "No pending wrappers")
    return (False, f"{len(pending)} wrappers still pending: {pending}")


@register_assertion_handler("expected_results")
def check_expected_results(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check that every action produced its expected_result; actions without
    one must have succeeded.

    State:
        results: List of ActionOutcome recorded by the runner
    """
    results = state.get("results", [])
    mismatches = [r for r in results if not r.matched]
    if not mismatches:
        return (True, f"All {len(results)} action results matched")
    details = ", ".join(
        f"#{r.index} {r.action} got {r.result}, expected {r.expected or 'ok'}" for r in mismatches
    )
    return (False, f"Unexpected results: {details}")


@register_assertion_handler("chains_consistent")
def check_chains_consistent(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check that every account chain verifies and replays to the ledger's ownership.
    """
    ledger = state["sim"].ledger
    for address, chain in ledger.chains.items():
        if not chain.verify_chain():
            return (False, f"Chain of {address} failed verification")
        owned = {obj.object_id for obj in ledger.objects_owned_by(address)}
        replayed = chain.holdings()
        if owned != replayed:
            return (False, f"Chain of {address} replays to {sorted(replayed)}, ledger has {sorted(owned)}")
    return (True, f"All {len(ledger.chains)} chains consistent")
