"""CAN motor models, DR16 remote receiver decoding, offline detection and shooter control logic."""

__version__ = "0.1.0"