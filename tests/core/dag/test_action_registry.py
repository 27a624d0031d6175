# tests/core/dag/test_action_registry.py
"""
Testes do registry estático capability → ação.

Invariantes:
    - Cada capability é registrada no máximo uma vez (salvo `replace=True`)
    - Capabilities sem ação falham como erro de configuração
"""

import pytest

from tablesuite.actions import default_registry
from tablesuite.core.dag import ActionRegistry, NodeAction, NodeCapability
from tablesuite.core.dag.registry import DuplicateActionError
from tablesuite.core.exceptions import ConfigurationError, UnknownNodeTypeError


def test_register_and_create(ScriptedAction):
    action = ScriptedAction()
    registry = ActionRegistry()
    registry.register("insert", lambda: action)

    assert registry.supports(NodeCapability.INSERT)
    assert registry.create(NodeCapability.INSERT) is action
    assert registry.capabilities() == [NodeCapability.INSERT]


def test_duplicate_registration_raises(ScriptedAction):
    registry = ActionRegistry()
    registry.register(NodeCapability.SYNC, ScriptedAction)

    with pytest.raises(DuplicateActionError) as exc:
        registry.register(NodeCapability.SYNC, ScriptedAction)

    assert isinstance(exc.value, ConfigurationError)
    registry.register(NodeCapability.SYNC, ScriptedAction, replace=True)


def test_create_unknown_capability_raises():
    with pytest.raises(UnknownNodeTypeError):
        ActionRegistry().create(NodeCapability.VALIDATE)


def test_default_registry_covers_every_capability():
    registry = default_registry()

    registry.ensure_supports(list(NodeCapability))
    for cap in NodeCapability:
        action = registry.create(cap)
        assert isinstance(action, NodeAction)
        assert action.capability is cap
