"""Test plan admission checks."""

import pytest

from kubeupgrade.errors import PlanValidationError
from kubeupgrade.model.validation import validate_plan


class TestValidatePlan:
    def test_valid_plan(self, plan_factory):
        """Test that a complete plan passes."""
        plan = plan_factory(
            {
                "control": {"labels": {"node-role.kubernetes.io/control-plane": ""}},
                "compute": {"dependsOn": ["control"], "upgraded": {"checkInterval": "1h"}},
            }
        )
        validate_plan(plan)

    def test_collects_all_problems(self, plan_factory):
        """Test that every problem is reported at once."""
        plan = plan_factory(
            {"compute": {"dependsOn": ["control"], "upgraded": {"retryInterval": "often"}}},
            kubernetes_version="1.31",
            upgraded={"logLevel": "verbose"},
        )

        with pytest.raises(PlanValidationError) as exc_info:
            validate_plan(plan)

        problems = exc_info.value.problems
        assert len(problems) == 5
        assert any("kubernetesVersion" in p for p in problems)
        assert any("fleetlockUrl" in p for p in problems)
        assert any("unknown group 'control'" in p for p in problems)
        assert any("groups.compute.upgraded.retryInterval" in p for p in problems)
        assert any("logLevel" in p for p in problems)

    def test_requires_groups(self, plan_factory):
        """Test that a plan needs at least one group."""
        with pytest.raises(PlanValidationError, match="at least one group"):
            validate_plan(plan_factory({}))

    def test_negative_interval(self, plan_factory):
        """Test that intervals in a plan must be positive."""
        plan = plan_factory(
            {"compute": {"upgraded": {"retryInterval": "-1m"}}},
            upgraded={"fleetlockUrl": "https://lock", "checkInterval": "0s"},
        )

        with pytest.raises(PlanValidationError) as exc_info:
            validate_plan(plan)

        assert len(exc_info.value.problems) == 2

    def test_cycles_are_accepted(self, plan_factory):
        """Test that dependency cycles are not an admission error."""
        validate_plan(plan_factory({"a": {"dependsOn": ["b"]}, "b": {"dependsOn": ["a"]}}))
