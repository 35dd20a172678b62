"""Public API for gates.

Gates registered here live in the registry of the process-wide engine and are
consulted by every ``is_user_allowed`` / ``authorize`` call. Register them once,
typically from ``AppConfig.ready``.
"""

from permit_authz.engine.enforcer import AuthorizationEngine

__all__ = [
    "define_gate",
    "register_before_hook",
    "register_after_hook",
    "register_resource_policy",
    "forget_gate",
    "get_gate_abilities",
]


def _gates():
    return AuthorizationEngine.get_instance().gates


def define_gate(ability: str, callback) -> None:
    """Register the rule ``callback(user, resource)`` deciding an ability."""
    _gates().define(ability, callback)


def register_before_hook(callback) -> None:
    """Register ``callback(user, ability, resource)`` to run before every gate."""
    _gates().before(callback)


def register_after_hook(callback) -> None:
    """Register ``callback(user, ability, result, resource)`` to run after every gate rule."""
    _gates().after(callback)


def register_resource_policy(name: str, policy) -> None:
    """Register the standard resource abilities of ``name`` backed by a policy class or instance."""
    _gates().resource(name, policy)


def forget_gate(ability: str) -> None:
    """Remove the rule of an ability, if any."""
    _gates().forget(ability)


def get_gate_abilities() -> list[str]:
    """Get the abilities with a registered rule."""
    return _gates().abilities()
