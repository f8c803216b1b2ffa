"""MedStock bounded context: batch-tracked pharmacy inventory.

Owns inventory lots (one per shop, medicine and batch), their stock movement
trail, low-stock and expiry alerting, and the reservation effects driven by
the order lifecycle (placed, confirmed, cancelled, delivered).
"""

from protean.domain import Domain

from medstock.utils.logging import configure_logging, get_logger

configure_logging(log_dir="logs", log_file_prefix="medstock")

logger = get_logger(__name__)

medstock = Domain(name="medstock")
