"""Action operators for provctl."""

from provctl.operators.apt import AptOperator
from provctl.operators.base import Operator, classify_failure
from provctl.operators.command import CommandOperator
from provctl.operators.files import FileOperator
from provctl.operators.systemd import SystemdOperator

__all__ = [
    "AptOperator",
    "CommandOperator",
    "FileOperator",
    "Operator",
    "SystemdOperator",
    "classify_failure",
]
