"""Test-case registry and execution tracker."""

__version__ = "0.1.0"
