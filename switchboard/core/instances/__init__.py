from switchboard.core.instances.cache import InstanceCache, without_protocol
from switchboard.core.instances.models import InstanceRecord

__all__ = ["InstanceCache", "InstanceRecord", "without_protocol"]
