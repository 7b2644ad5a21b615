"""
NeoIPC Surveillance Reporting

Renders NeoIPC surveillance reports by driving the Quarto renderer on
behalf of HTTP clients.

Architecture:
- Negotiation Context: Media type and template locale selection
- Staging Context: Isolated per-request template workspaces
- Rendering Context: Quarto process supervision and log classification
- Reports Context: Report variants, descriptors and request orchestration
- Extraction Context: Contract of the external DHIS2 import tool
"""

__version__ = "0.1.0"
