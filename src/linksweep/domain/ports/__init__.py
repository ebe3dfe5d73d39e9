from .job import JobPort
from .link_prober import LinkProberPort
from .link_store import LinkStorePort

__all__ = [
    "JobPort",
    "LinkProberPort",
    "LinkStorePort",
]
