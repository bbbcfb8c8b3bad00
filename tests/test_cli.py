"""Test the command line interface."""

from typer.testing import CliRunner
from unittest.mock import patch, MagicMock

from kubeupgrade.cli.main import app

runner = CliRunner()

VALID_PLAN = """\
apiVersion: kubeupgrade.heathcliff.eu/v1alpha3
kind: KubeUpgradePlan
metadata:
  name: upgrade-plan
spec:
  kubernetesVersion: v1.31.0
  groups:
    control:
      labels:
        node-role.kubernetes.io/control-plane: ""
    compute:
      dependsOn:
        - control
  upgraded:
    fleetlockUrl: https://fleetlock.example.com
"""


class TestCli:
    def test_validate_valid_plan(self, tmp_path):
        """Test validating a correct plan."""
        path = tmp_path / "plan.yaml"
        path.write_text(VALID_PLAN)

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 0
        assert "is valid" in result.stdout

    def test_validate_invalid_plan(self, tmp_path):
        """Test that problems are listed and the command fails."""
        path = tmp_path / "plan.yaml"
        path.write_text(VALID_PLAN.replace("v1.31.0", "latest"))

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "kubernetesVersion" in result.stdout

    def test_validate_missing_file(self, tmp_path):
        """Test a plan file that does not exist."""
        result = runner.invoke(app, ["validate", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1

    @patch("kubeupgrade.cli.main.K8sClient")
    def test_status(self, mock_client_cls, plan_factory):
        """Test listing plan status."""
        plan = plan_factory({"control": {}})
        plan.status.summary = "Progressing: [control]"
        plan.status.groups = {"control": "Progressing: 0/1 nodes upgraded"}
        mock_client = MagicMock()
        mock_client.list_plans.return_value = [plan]
        mock_client_cls.return_value = mock_client

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "upgrade-plan" in result.stdout
        assert "control" in result.stdout

    def test_version(self):
        """Test the version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "kube-upgrade" in result.stdout
