"""pyHomie - Python library for Homie v4 MQTT devices."""

__version__ = "0.1.0"

from pyHomie.enums import Datatype, DeviceState  # noqa: F401 – re-export for convenience
from pyHomie.errors import (  # noqa: F401
    AlreadyPublished,
    DuplicateIdentifier,
    HomieError,
    InvalidConfiguration,
    InvalidIdentifier,
    RoutingTaskError,
)
from pyHomie.entity import ID_PATTERN, escape_id, is_valid_id  # noqa: F401
from pyHomie.connection import MqttConnection  # noqa: F401
from pyHomie.persistence import ValueStore  # noqa: F401
from pyHomie.property import Property  # noqa: F401
from pyHomie.node import Node  # noqa: F401
from pyHomie.device import (  # noqa: F401
    DEFAULT_ROOT_TOPIC,
    HOMIE_VERSION,
    Device,
)
