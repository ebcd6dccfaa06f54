# lotkeeper/utils/__init__.py

from .logger import setup_logger
from .lot_csv_loader import read_lot_csv
from .price_client import ApiNinjasPriceClient

__all__ = ["ApiNinjasPriceClient", "read_lot_csv", "setup_logger"]
