"""Test-case registry service.

This module provides tracking of test cases over their lifetime:
- Authoring and archival of test-case records
- Execution recording with full history
- Status counts and execution coverage
"""

from tcregistry.registry.service import RegistryService

__all__ = ["RegistryService"]
