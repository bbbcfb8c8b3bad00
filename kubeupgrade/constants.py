"""Annotation keys and well-known values shared by controller and daemon."""

BASE_DOMAIN = "kube-upgrade.heathcliff.eu/"
NODE_PREFIX = "node." + BASE_DOMAIN
CONFIG_PREFIX = "config." + BASE_DOMAIN

# Node state written by the controller and advanced by the daemon
NODE_DESIRED_VERSION = NODE_PREFIX + "desiredVersion"
NODE_PHASE = NODE_PREFIX + "phase"
NODE_UPGRADED_VERSION = NODE_PREFIX + "upgradedVersion"

PHASE_PENDING = "pending"
PHASE_REBASING = "rebasing"
PHASE_UPGRADING = "upgrading"
PHASE_COMPLETED = "completed"
PHASE_ERROR = "error"

PHASES = (PHASE_PENDING, PHASE_REBASING, PHASE_UPGRADING, PHASE_COMPLETED, PHASE_ERROR)

# Per-group configuration pushed to the daemons
CONFIG_STREAM = CONFIG_PREFIX + "stream"
CONFIG_LOCK_URL = CONFIG_PREFIX + "lockURL"
CONFIG_LOCK_GROUP = CONFIG_PREFIX + "lockGroup"
CONFIG_CHECK_INTERVAL = CONFIG_PREFIX + "checkInterval"
CONFIG_RETRY_INTERVAL = CONFIG_PREFIX + "retryInterval"

LABEL_PLAN_NAME = BASE_DOMAIN + "plan"
LABEL_NODE_GROUP = BASE_DOMAIN + "group"

PLAN_RESOURCE = "kubeupgradeplans"

KUBEADM_CONFIGMAP = "kubeadm-config"
KUBEADM_NAMESPACE = "kube-system"

DEFAULT_CONFIG_DIR = "/etc/kube-upgraded/"
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR + DEFAULT_CONFIG_FILE

NODE_NAME_ENV = "NODE_NAME"
LOG_LEVEL_ENV = "LOG_LEVEL"
