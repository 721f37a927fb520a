"""
Ledger computation engine.

Pure, synchronous functions: weights, amounts, totals, GST and balance
snapshots. Nothing here reads configuration or touches the store.
"""

from .weights import ItemWeights, compute_fine_weight, compute_net_weight, compute_weights
from .amounts import compute_item_amount, compute_labour_charge, price_item, price_items
from .totals import aggregate, fine_weight_by_metal, items_amount
from .gst import (
    STATE_CODES,
    build_gst_details,
    compute_gst,
    determine_tax_type,
    extract_state_code,
    format_gst_number,
    gst_taxable_amount,
    is_gst_settings_complete,
    is_valid_gst_format,
    state_code_from_gst,
    state_name,
    validate_gst_invoice,
)
from .snapshot import (
    apply_voucher,
    compute_snapshot,
    convert_cash_to_fine,
    net_bill_value,
    revert_voucher,
    voucher_effect,
)
from .statement import StaleSnapshot, StatementRow, find_stale_snapshots, replay_history

__all__ = [
    # Weights
    "ItemWeights",
    "compute_weights",
    "compute_net_weight",
    "compute_fine_weight",
    # Amounts
    "compute_labour_charge",
    "compute_item_amount",
    "price_item",
    "price_items",
    # Totals
    "aggregate",
    "fine_weight_by_metal",
    "items_amount",
    # GST
    "STATE_CODES",
    "build_gst_details",
    "compute_gst",
    "determine_tax_type",
    "extract_state_code",
    "format_gst_number",
    "gst_taxable_amount",
    "is_gst_settings_complete",
    "is_valid_gst_format",
    "state_code_from_gst",
    "state_name",
    "validate_gst_invoice",
    # Snapshots
    "apply_voucher",
    "compute_snapshot",
    "convert_cash_to_fine",
    "net_bill_value",
    "revert_voucher",
    "voucher_effect",
    # Replay
    "StatementRow",
    "StaleSnapshot",
    "replay_history",
    "find_stale_snapshots",
]
