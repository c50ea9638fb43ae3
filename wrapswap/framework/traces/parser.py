"""
YAML trace parser.
"""

from typing import Any, Dict, List

import yaml

from .schema import (
    ACTION_PARAMS,
    Trace, TraceAction, TraceAssertion,
    TraceAccountSpec, TraceSetup,
    ValidationError,
)


def parse_trace(yaml_content: str) -> Trace:
    """Parse a trace from YAML content."""
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Trace must be a mapping")
    return _parse_trace_dict(data)


def load_trace(file_path: str) -> Trace:
    """Load a trace from a YAML file."""
    with open(file_path, 'r') as f:
        return parse_trace(f.read())


def _parse_trace_dict(data: Dict[str, Any]) -> Trace:
    """Parse a trace from a dictionary."""
    required = ["name", "description", "setup", "actions", "assertions"]
    for field in required:
        if field not in data:
            raise ValidationError(f"Missing required field: {field}")

    setup = _parse_setup(data["setup"])
    actions = _parse_actions(data["actions"])
    assertions = _parse_assertions(data["assertions"])

    known = set(setup.accounts) | {setup.admin}
    for action in actions:
        if action.actor not in known:
            raise ValidationError(f"Action '{action.action}' has unknown actor: {action.actor}")

    return Trace(
        name=data["name"],
        description=data["description"],
        setup=setup,
        actions=actions,
        assertions=assertions,
    )


def _parse_setup(data: Dict[str, Any]) -> TraceSetup:
    """Parse setup specification."""
    accounts = {}
    for name, account_data in (data.get("accounts") or {}).items():
        if isinstance(account_data, dict):
            balance = account_data.get("balance", 0)
            if not isinstance(balance, int) or balance < 0:
                raise ValidationError(f"Invalid balance for {name}: {balance!r}")
            accounts[name] = TraceAccountSpec(balance=balance)
        else:
            accounts[name] = TraceAccountSpec()

    return TraceSetup(
        admin=data.get("admin", "admin"),
        accounts=accounts,
        min_fee=data.get("min_fee"),
    )


def _parse_actions(data: List[Dict[str, Any]]) -> List[TraceAction]:
    """Parse action list."""
    actions = []
    for index, action_data in enumerate(data):
        for key in ("actor", "action"):
            if key not in action_data:
                raise ValidationError(f"Action #{index} is missing '{key}'")

        name = action_data["action"]
        if name not in ACTION_PARAMS:
            raise ValidationError(f"Invalid action: {name}. Valid actions: {sorted(ACTION_PARAMS)}")

        params = action_data.get("params") or {}
        for param in ACTION_PARAMS[name]:
            if param not in params:
                raise ValidationError(f"Action '{name}' (#{index}) is missing param '{param}'")

        expected = action_data.get("expected_result")
        action = TraceAction(
            time=float(action_data.get("time", index)),
            actor=action_data["actor"],
            action=name,
            params=params,
            expected_result=str(expected) if expected is not None else None,
            bind=action_data.get("bind"),
        )
        actions.append(action)

    # Sort by time; sort is stable so same-time actions keep file order
    actions.sort(key=lambda a: a.time)

    return actions


def _parse_assertions(data: List[Dict[str, Any]]) -> List[TraceAssertion]:
    """Parse assertion list."""
    assertions = []
    for assert_data in data:
        if "type" not in assert_data:
            raise ValidationError("Assertion is missing 'type'")
        assertion = TraceAssertion(
            type=assert_data["type"],
            description=assert_data.get("description", ""),
            params={k: v for k, v in assert_data.items() if k not in ["type", "description"]},
        )
        assertions.append(assertion)

    return assertions
