"""CSV and JSON exports of ledger state."""

from .export import export_positions_csv, export_state_json, positions_frame

__all__ = ["export_positions_csv", "export_state_json", "positions_frame"]
