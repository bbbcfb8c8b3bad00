"""Node daemon: drives the local OS and Kubernetes upgrade of a single node."""

import asyncio
import os
import signal
import threading
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple

from .. import __version__
from ..constants import (
    CONFIG_CHECK_INTERVAL,
    CONFIG_LOCK_GROUP,
    CONFIG_LOCK_URL,
    CONFIG_RETRY_INTERVAL,
    CONFIG_STREAM,
    DEFAULT_CONFIG_PATH,
    KUBEADM_CONFIGMAP,
    KUBEADM_NAMESPACE,
    NODE_DESIRED_VERSION,
    NODE_PHASE,
    NODE_UPGRADED_VERSION,
    PHASE_COMPLETED,
    PHASE_ERROR,
    PHASE_REBASING,
    PHASE_UPGRADING,
)
from ..core import Kubeadm, RpmOstree, image_transport
from ..core.kubeadm import HOST_PREFIX
from ..errors import ConfigError, KubeUpgradeError, LockDeniedError, LockError, NotFoundError
from ..fleetlock import FleetlockClient
from ..fleetlock.utils import get_machine_id
from ..k8s import K8sClient
from ..model.kubernetes import Node
from ..utils.duration import parse_interval
from ..utils.logger import get_logger, set_log_level
from .config import DaemonConfig, load_config
from .node import (
    cluster_version_from_kubeadm_config,
    expected_image_ref,
    find_node_name,
    node_has_correct_stream,
    node_needs_upgrade,
)

logger = get_logger(__name__)

NODE_POLL_INTERVAL = 30.0
CONFIG_POLL_INTERVAL = 5.0


class Trigger(str, Enum):
    """Reasons to start an upgrade attempt."""

    OS_UPDATE = "os-update"
    NODE_CHANGED = "node-changed"


LockFactory = Callable[[str, str], FleetlockClient]


class Daemon:
    """Upgrade state machine of one node.

    Attempts are serialized by an upgrade mutex. Triggers that arrive while
    an attempt is running, or while one is already queued, are dropped. Each
    trigger kind is retried on its own, taking the mutex once per attempt.
    """

    def __init__(
        self,
        client: K8sClient,
        rpm_ostree: RpmOstree,
        kubeadm: Kubeadm,
        node_name: str,
        booted_image_ref: str,
        config: DaemonConfig,
        config_path: Optional[str] = None,
        lock_factory: LockFactory = FleetlockClient,
        node_poll_interval: float = NODE_POLL_INTERVAL,
        config_poll_interval: float = CONFIG_POLL_INTERVAL,
    ):
        self.client = client
        self.rpm_ostree = rpm_ostree
        self.kubeadm = kubeadm
        self.node_name = node_name
        self.booted_image_ref = booted_image_ref
        self.config_path = Path(config_path or DEFAULT_CONFIG_PATH)
        self.node_poll_interval = node_poll_interval
        self.config_poll_interval = config_poll_interval
        self._lock_factory = lock_factory

        # Guards the live settings below, they are swapped by the config watcher
        self._config_lock = threading.RLock()
        self._stream = ""
        self._fleetlock: Optional[FleetlockClient] = None
        self._check_interval = 0.0
        self._retry_interval = 0.0
        self._allow_unsigned = False
        self.log_level = ""

        self._upgrade_lock = asyncio.Lock()
        self._triggers: "asyncio.Queue[Trigger]" = asyncio.Queue(maxsize=1)
        self._stop = asyncio.Event()

        self.update_from_config(config)

    @classmethod
    def from_config_file(cls, config_path: Optional[str] = None) -> "Daemon":
        """Build a daemon for the node this process runs on."""
        cfg = load_config(config_path)
        set_log_level(cfg.log_level)

        rpm_ostree = RpmOstree(cfg.os_tool_path)
        kubeadm = Kubeadm(cfg.upgrade_tool_path)
        client = K8sClient(kubeconfig=HOST_PREFIX + cfg.kubeconfig)

        machine_id = get_machine_id()
        node_name = find_node_name(client, machine_id)
        booted_image_ref = rpm_ostree.booted_image_ref()
        logger.info(f"Running on node {node_name}, booted from {booted_image_ref}")

        return cls(
            client,
            rpm_ostree,
            kubeadm,
            node_name,
            booted_image_ref,
            cfg,
            config_path=config_path,
        )

    # Live configuration

    @property
    def stream(self) -> str:
        with self._config_lock:
            return self._stream

    @property
    def fleetlock(self) -> FleetlockClient:
        with self._config_lock:
            return self._fleetlock

    @property
    def check_interval(self) -> float:
        with self._config_lock:
            return self._check_interval

    @property
    def retry_interval(self) -> float:
        with self._config_lock:
            return self._retry_interval

    @property
    def allow_unsigned(self) -> bool:
        with self._config_lock:
            return self._allow_unsigned

    def update_from_config(self, cfg: DaemonConfig):
        """Apply a config file. Nothing is changed unless every value is valid."""
        cfg.validate_values()
        check_interval = parse_interval(cfg.check_interval).total_seconds()
        retry_interval = parse_interval(cfg.retry_interval).total_seconds()

        with self._config_lock:
            fleetlock = self._fleetlock
            if (
                fleetlock is None
                or fleetlock.url != cfg.fleetlock_url.rstrip("/")
                or fleetlock.group != cfg.fleetlock_group
            ):
                fleetlock = self._lock_factory(cfg.fleetlock_url, cfg.fleetlock_group)

            set_log_level(cfg.log_level)
            self.log_level = cfg.log_level
            self._stream = cfg.stream
            self._fleetlock = fleetlock
            self._check_interval = check_interval
            self._retry_interval = retry_interval
            self._allow_unsigned = cfg.allow_unsigned_ostree_images

    def update_from_config_file(self):
        """Reload the config file."""
        self.update_from_config(load_config(self.config_path))
        logger.info(f"Reloaded config from {self.config_path}")

    def update_config_from_annotations(self, annotations: dict):
        """Apply the group config the controller pushed to the node.

        Absent keys keep their current value, present keys must be valid.
        """
        with self._config_lock:
            stream = self._stream
            url = self._fleetlock.url
            group = self._fleetlock.group
            check_interval = self._check_interval
            retry_interval = self._retry_interval

            for key in (CONFIG_STREAM, CONFIG_LOCK_URL, CONFIG_LOCK_GROUP,
                        CONFIG_CHECK_INTERVAL, CONFIG_RETRY_INTERVAL):
                if key in annotations and not annotations[key]:
                    raise ConfigError(f"annotation {key} is empty")

            if CONFIG_STREAM in annotations:
                stream = annotations[CONFIG_STREAM]
                logger.debug(f"Set stream to {stream}")
            if CONFIG_LOCK_URL in annotations:
                url = annotations[CONFIG_LOCK_URL]
            if CONFIG_LOCK_GROUP in annotations:
                group = annotations[CONFIG_LOCK_GROUP]
            if CONFIG_CHECK_INTERVAL in annotations:
                check_interval = parse_interval(annotations[CONFIG_CHECK_INTERVAL]).total_seconds()
                logger.debug(f"Set checkInterval to {check_interval}s")
            if CONFIG_RETRY_INTERVAL in annotations:
                retry_interval = parse_interval(annotations[CONFIG_RETRY_INTERVAL]).total_seconds()
                logger.debug(f"Set retryInterval to {retry_interval}s")

            fleetlock = self._fleetlock
            if url.rstrip("/") != fleetlock.url or group != fleetlock.group:
                try:
                    fleetlock = self._lock_factory(url, group)
                except LockError as e:
                    raise ConfigError(f"failed to create fleetlock client: {e}")
                logger.debug(f"Set lock to url={fleetlock.url} group={fleetlock.group}")

            self._stream = stream
            self._fleetlock = fleetlock
            self._check_interval = check_interval
            self._retry_interval = retry_interval

    def update_config_from_node(self):
        """Fetch the node and apply its config annotations."""
        node = self.get_node()
        self.update_config_from_annotations(node.annotations)

    # Helpers

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self):
        """Ask every loop to finish."""
        if not self._stop.is_set():
            logger.info("Stopping daemon")
        self._stop.set()

    async def _call(self, func, *args):
        return await asyncio.to_thread(func, *args)

    async def _sleep(self, seconds: float) -> bool:
        """Sleep for seconds. Returns True if the daemon was stopped meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def retry(self, action: Callable[[], Awaitable[bool]]) -> bool:
        """Run action until it reports success, sleeping retryInterval in between.

        Returns False if the daemon was stopped before action succeeded.
        """
        while not self.stopped:
            if await action():
                return True
            if await self._sleep(self.retry_interval):
                break
        return False

    def _attempt(self, action: Callable[[], Awaitable[None]]) -> Callable[[], Awaitable[bool]]:
        """Wrap an upgrade attempt for retry, logging its failures."""

        async def run() -> bool:
            try:
                await action()
            except LockDeniedError as e:
                logger.info(f"Reboot lock is held by another node, retrying: {e}")
                return False
            except (KubeUpgradeError, OSError) as e:
                logger.error(f"Upgrade attempt failed: {e}")
                return False
            return True

        return run

    def get_node(self) -> Node:
        return self.client.get_node(self.node_name)

    def _transport(self) -> str:
        return image_transport(self.allow_unsigned)

    def node_has_correct_stream(self, node: Node) -> bool:
        return node_has_correct_stream(node, self._transport(), self.stream, self.booted_image_ref)

    def update_node_status(self, phase: str):
        """Write the phase annotation of this node."""
        node = self.get_node()
        node.annotations[NODE_PHASE] = phase
        self.client.update_node(node)
        logger.debug(f"Set node phase to {phase}")

    async def _set_phase(self, phase: str):
        await self._call(self.update_node_status, phase)

    async def mark_error(self):
        """Set the node phase to error, logging if that fails as well."""
        try:
            await self._set_phase(PHASE_ERROR)
        except KubeUpgradeError as e:
            logger.error(f"Failed to mark node {self.node_name} as failed: {e}")

    async def release_lock(self) -> bool:
        """Release the reboot lock, retrying until the server confirms."""

        async def release() -> bool:
            try:
                await self._call(self.fleetlock.release)
            except LockError as e:
                logger.error(f"Failed to release lock: {e}")
                return False
            return True

        return await self.retry(release)

    # Upgrade attempts

    async def do_node_upgrade(self, node: Optional[Node] = None):
        """Move this node to its desired Kubernetes version.

        Without a node, the current node is fetched and nothing happens when
        it is already upgraded and booted from the right stream. A node that
        boots the wrong image is rebased, which reboots the host. Otherwise
        kubeadm upgrades the cluster or the node in place.
        """
        if self._upgrade_lock.locked():
            logger.debug("Upgrade already in progress, dropping trigger")
            return

        async with self._upgrade_lock:
            if node is None:
                node = await self._call(self.get_node)
                if not node_needs_upgrade(node) and self.node_has_correct_stream(node):
                    return

            try:
                self.update_config_from_annotations(node.annotations)
            except ConfigError as e:
                logger.error(f"Failed to update config from node annotations: {e}")
                await self.mark_error()
                raise

            version = node.annotations.get(NODE_DESIRED_VERSION, "")

            await self._call(self.fleetlock.acquire)
            logger.info(f"Acquired reboot lock for upgrade to {version}")

            if version != self.kubeadm.version() or not self.node_has_correct_stream(node):
                await self._set_phase(PHASE_REBASING)
                image = expected_image_ref(self._transport(), self.stream, version)
                logger.info(f"Rebasing node to {image}")
                try:
                    await self._call(self.rpm_ostree.rebase, image)
                except (KubeUpgradeError, OSError) as e:
                    logger.error(f"Failed to rebase node: {e}")
                    await self.mark_error()
                    raise
                # rebase reboots the host on success
                return

            await self._set_phase(PHASE_UPGRADING)
            try:
                configmap = await self._call(
                    self.client.get_configmap, KUBEADM_CONFIGMAP, KUBEADM_NAMESPACE
                )
                cluster_version = cluster_version_from_kubeadm_config(configmap)
                if cluster_version != version:
                    logger.info(f"Upgrading cluster from {cluster_version} to {version}")
                    await self._call(self.kubeadm.upgrade_cluster, version)
                else:
                    logger.info(f"Upgrading node to {version}")
                    await self._call(self.kubeadm.upgrade_node)
            except (KubeUpgradeError, OSError) as e:
                logger.error(f"Failed to upgrade kubernetes: {e}")
                await self.mark_error()
                raise

            await self._set_phase(PHASE_COMPLETED)
            logger.info(f"Finished upgrade to {version}")
            await self.release_lock()

    async def do_os_upgrade(self):
        """Upgrade to the newest image of the current stream. Reboots on success."""
        if self._upgrade_lock.locked():
            logger.debug("Upgrade already in progress, dropping trigger")
            return

        async with self._upgrade_lock:
            await self._call(self.update_config_from_node)
            await self._call(self.fleetlock.acquire)
            logger.info("Acquired reboot lock for OS upgrade")

            await self._call(self.rpm_ostree.upgrade)
            await self.release_lock()

    # Triggers

    def publish(self, trigger: Trigger) -> bool:
        """Queue a trigger unless an attempt is running or one is already queued."""
        if self._upgrade_lock.locked():
            logger.debug(f"Dropping trigger {trigger.value}, upgrade in progress")
            return False
        try:
            self._triggers.put_nowait(trigger)
        except asyncio.QueueFull:
            logger.debug(f"Dropping trigger {trigger.value}, another one is queued")
            return False
        return True

    async def _next_trigger(self) -> Optional[Trigger]:
        get = asyncio.ensure_future(self._triggers.get())
        stop = asyncio.ensure_future(self._stop.wait())
        done, pending = await asyncio.wait({get, stop}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if get in done:
            return get.result()
        return None

    async def handle_triggers(self):
        """Start a retry loop per trigger kind.

        The loops of different kinds run side by side and only take the
        upgrade mutex for single attempts, so a failing OS upgrade does not
        hold back a pending Kubernetes upgrade.
        """
        handlers = {
            Trigger.OS_UPDATE: self.do_os_upgrade,
            Trigger.NODE_CHANGED: self.do_node_upgrade,
        }
        running: Dict[Trigger, asyncio.Task] = {}
        try:
            while not self.stopped:
                trigger = await self._next_trigger()
                if trigger is None:
                    return

                task = running.get(trigger)
                if task is not None and not task.done():
                    logger.debug(f"Dropping trigger {trigger.value}, it is already being retried")
                    continue

                logger.debug(f"Handling trigger {trigger.value}")
                running[trigger] = asyncio.create_task(
                    self.retry(self._attempt(handlers[trigger]))
                )
        finally:
            if running:
                await asyncio.gather(*running.values())

    # Watchers

    async def watch_for_os_upgrade(self):
        """Check for a new OS image of the booted stream every checkInterval."""
        while not self.stopped:
            result = {}

            async def check() -> bool:
                try:
                    result["available"] = await self._call(self.rpm_ostree.check_for_upgrade)
                except (KubeUpgradeError, OSError) as e:
                    logger.error(f"Failed to check for OS upgrade: {e}")
                    return False
                return True

            if not await self.retry(check):
                return

            if result["available"]:
                logger.info("Found OS upgrade, starting upgrade attempt")
                self.publish(Trigger.OS_UPDATE)
            else:
                logger.debug("No OS upgrade available")

            if await self._sleep(self.check_interval):
                return

    async def watch_node(self):
        """Poll the node and trigger an attempt when it wants an upgrade."""
        while not self.stopped:
            try:
                node = await self._call(self.get_node)
            except NotFoundError:
                logger.error(f"Node {self.node_name} has been deleted from the cluster")
                self.stop()
                return
            except KubeUpgradeError as e:
                logger.warning(f"Failed to get node {self.node_name}: {e}")
            else:
                if node_needs_upgrade(node):
                    self.publish(Trigger.NODE_CHANGED)

            if await self._sleep(self.node_poll_interval):
                return

    def _config_file_state(self) -> Tuple:
        """Fingerprint of the config file, including a mounted ConfigMap's ..data link."""
        state = []
        for path in (self.config_path, self.config_path.parent / "..data"):
            try:
                st = os.stat(path)
            except OSError:
                state.append(None)
                continue
            state.append((st.st_ino, st.st_mtime_ns, st.st_size))
        return tuple(state)

    async def watch_config_file(self):
        """Reload the config when the file or its ConfigMap mount changes."""
        last = self._config_file_state()
        while not await self._sleep(self.config_poll_interval):
            current = self._config_file_state()
            if current == last:
                continue
            last = current
            logger.info(f"Config file {self.config_path} changed")
            try:
                self.update_from_config_file()
            except ConfigError as e:
                logger.error(f"Failed to reload config, keeping the old one: {e}")

    # Lifecycle

    def annotate_upgraded_version(self, node: Node) -> Node:
        """Record which daemon version runs on the node."""
        if node.annotations.get(NODE_UPGRADED_VERSION) == __version__:
            return node
        node.annotations[NODE_UPGRADED_VERSION] = __version__
        return self.client.update_node(node)

    async def startup(self):
        """Finish or clean up whatever the last boot left behind."""
        await self._call(self.rpm_ostree.register_as_driver)

        node = await self._call(self.get_node)
        node = await self._call(self.annotate_upgraded_version, node)

        if not node_needs_upgrade(node) and self.node_has_correct_stream(node):
            logger.debug("Releasing any lock that may be held by this machine")
            await self.release_lock()
        else:
            logger.info("Node has a pending upgrade, resuming it")
            await self.retry(self._attempt(self.do_node_upgrade))

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Can not install handler for {sig.name}")

    async def run(self):
        """Run the daemon until it receives SIGINT or SIGTERM or its node is deleted."""
        self._install_signal_handlers()
        config_watcher = asyncio.create_task(self.watch_config_file())
        try:
            await self.startup()
            if self.stopped:
                return

            logger.info("Starting daemon")
            await asyncio.gather(
                self.watch_for_os_upgrade(),
                self.watch_node(),
                self.handle_triggers(),
            )
        finally:
            self.stop()
            await config_watcher
            logger.info("Daemon stopped")
