# relay_agent/domain/relays/enums.py

from enum import Enum


class RelayState(str, Enum):
    ON = "on"
    OFF = "off"

    @classmethod
    def from_raw(cls, raw: int) -> "RelayState":
        return cls.ON if raw == 1 else cls.OFF
