"""Gate registry for dynamic, attribute based authorization rules.

A gate is a callback registered for a single ability that decides it from the
user and the resource at check time. Before-hooks run ahead of every gate and
can short-circuit the check, after-hooks run behind the gate and can overwrite
its result.

Callback shapes:
    - before-hook: ``(user, ability, resource)``
    - ability rule: ``(user, resource)``
    - after-hook: ``(user, ability, result, resource)`` where ``result`` is a GateResult

Callbacks return ``True``, ``False``, ``None`` (no opinion) or a GateResult.

Usage:
    from permit_authz.engine.gates import GateRegistry
    gates = GateRegistry()
    gates.define("posts.update", lambda user, post: post.author_id == user.pk)
    gates.check("posts.update", user, post)
"""

import logging
import re
import threading
from typing import Any, Callable

from permit_authz.constants.abilities import RESOURCE_ABILITIES
from permit_authz.data import GateResult

logger = logging.getLogger(__name__)

AbilityRule = Callable[[Any, Any], Any]
BeforeHook = Callable[[Any, str, Any], Any]
AfterHook = Callable[[Any, str, GateResult, Any], Any]


def to_snake_case(name: str) -> str:
    """Convert a camelCase ability name to snake_case (``forceDelete`` -> ``force_delete``)."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class GateRegistry:
    """Ordered collections of before-hooks, ability rules and after-hooks."""

    def __init__(self):
        self._lock = threading.Lock()
        self._gates: dict[str, AbilityRule] = {}
        self._before: tuple[BeforeHook, ...] = ()
        self._after: tuple[AfterHook, ...] = ()

    def define(self, ability: str, callback: AbilityRule) -> "GateRegistry":
        """Register the rule deciding an ability, replacing any previous one.

        Args:
            ability: The ability name (e.g., 'posts.update').
            callback: Callable invoked as ``callback(user, resource)``.

        Returns:
            GateRegistry: The registry, for chaining.
        """
        with self._lock:
            self._gates = {**self._gates, ability: callback}
        return self

    def before(self, callback: BeforeHook) -> "GateRegistry":
        """Register a hook that runs before every gate check."""
        with self._lock:
            self._before = self._before + (callback,)
        return self

    def after(self, callback: AfterHook) -> "GateRegistry":
        """Register a hook that runs after every gate rule.

        The hook receives the rule result as a GateResult, which is truthy only
        for ALLOW.
        """
        with self._lock:
            self._after = self._after + (callback,)
        return self

    def has(self, ability: str) -> bool:
        """Check whether a rule is registered for an ability."""
        return ability in self._gates

    def abilities(self) -> list[str]:
        """Return the abilities with a registered rule, in registration order."""
        return list(self._gates)

    def forget(self, ability: str):
        """Remove the rule of an ability, if any."""
        with self._lock:
            self._gates = {key: rule for key, rule in self._gates.items() if key != ability}

    def clear(self):
        """Remove every rule and hook."""
        with self._lock:
            self._gates = {}
            self._before = ()
            self._after = ()

    def check(self, ability: str, user, resource=None) -> GateResult:
        """Evaluate an ability against the registered hooks and rule.

        1. Before-hooks run in registration order; the first decisive result is
           returned right away, no rule or after-hook runs.
        2. Without a rule for the ability the result is UNDECIDED.
        3. Otherwise the rule result is provisional and every after-hook runs in
           order; each decisive after-hook result replaces it.

        Args:
            ability: The ability being checked.
            user: The user performing the action.
            resource: Optional resource the action targets.

        Returns:
            GateResult: ALLOW, DENY or UNDECIDED. UNDECIDED never means denied, the
            caller moves on to its next authorization layer.
        """
        before_hooks, after_hooks = self._before, self._after
        rule = self._gates.get(ability)

        for hook in before_hooks:
            result = GateResult.from_value(hook(user, ability, resource))
            if result.is_decisive:
                logger.debug(f"Before-hook decided '{ability}': {result.value}")
                return result

        if rule is None:
            return GateResult.UNDECIDED

        result = GateResult.from_value(rule(user, resource))

        for hook in after_hooks:
            after_result = GateResult.from_value(hook(user, ability, result, resource))
            if after_result.is_decisive:
                result = after_result

        logger.debug(f"Gate decided '{ability}': {result.value}")
        return result

    def resource(self, name: str, policy) -> "GateRegistry":
        """Register the standard abilities of a resource backed by a policy.

        Registers ``<name>.viewAny``, ``<name>.view``, ``<name>.create``,
        ``<name>.update``, ``<name>.delete``, ``<name>.restore`` and
        ``<name>.forceDelete``. Each rule calls the policy method named after the
        ability, or its snake_case form (``view_any``, ``force_delete``), with
        ``(user, resource)``. A policy without the method denies the ability.

        Args:
            name: Resource name used as the ability prefix (e.g., 'posts').
            policy: Policy instance, or policy class instantiated on every check.

        Returns:
            GateRegistry: The registry, for chaining.
        """
        for ability in RESOURCE_ABILITIES:
            self.define(f"{name}.{ability}", self._policy_rule(policy, ability))
        return self

    @staticmethod
    def _policy_rule(policy, ability: str) -> AbilityRule:
        def rule(user, resource=None):
            instance = policy() if isinstance(policy, type) else policy
            method = getattr(instance, ability, None) or getattr(instance, to_snake_case(ability), None)
            if not callable(method):
                return False
            return method(user, resource)

        return rule
