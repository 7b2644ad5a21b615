"""
Staging Context

Responsibilities:
- Materializes isolated per-request copies of report template directories
- Prepares the shared Quarto filters directory once per process
- Releases workspaces on every exit path

Owns: Temporary workspace lifecycle
Never: Writes into canonical template directories
"""

from neoipc_reporting.contexts.staging.workspace import (
    Workspace,
    ensure_shared_tooling,
    mirror_tree,
)

__all__ = ["Workspace", "ensure_shared_tooling", "mirror_tree"]
