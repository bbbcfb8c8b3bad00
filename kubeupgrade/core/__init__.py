"""OS and Kubernetes tool wrappers."""

from .kubeadm import Kubeadm
from .rpm_ostree import RpmOstree, image_transport

__all__ = ["Kubeadm", "RpmOstree", "image_transport"]
