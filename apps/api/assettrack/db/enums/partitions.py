"""Partition and division enums."""

from enum import Enum


class Partition(str, Enum):
    """Isolated storage domains. A record lives in exactly one for its lifetime."""

    GENERAL_OPS = "neta_ops"
    LAB_OPS = "lab_ops"


class Division(str, Enum):
    """Division tags selected when a job is created."""

    NORTH_ALABAMA = "north_alabama"
    TENNESSEE = "tennessee"
    GEORGIA = "georgia"
    INTERNATIONAL = "international"
    SCAVENGER = "scavenger"
    CALIBRATION = "calibration"
    ARMADILLO = "armadillo"

    @property
    def partition(self) -> Partition:
        """Partition this division stores its jobs in."""
        if self in (Division.CALIBRATION, Division.ARMADILLO):
            return Partition.LAB_OPS
        return Partition.GENERAL_OPS
