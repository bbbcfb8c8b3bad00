"""Rolling OS and Kubernetes upgrades for immutable-OS clusters."""

__version__ = "0.4.0"
