"""
Hydra-based command line for lotkeeper.

Usage:
    # Record a purchase:
    uv run lotkeeper action=buy owner=me@example.com ticker=XEQT category=TFSA \
        quantity=10 book_price=28.50 purchase_date=2024-01-15

    # Sell 12 units, oldest lots first:
    uv run lotkeeper action=sell owner=me@example.com ticker=XEQT category=TFSA quantity=12

    # Show positions, or value them at current prices (needs API_NINJAS_KEY):
    uv run lotkeeper action=holdings owner=me@example.com
    uv run lotkeeper action=quote owner=me@example.com

    # Other actions:
    uv run lotkeeper action=list owner=me@example.com
    uv run lotkeeper action=update owner=me@example.com lot_id=1a2b3c4d book_price=27.90
    uv run lotkeeper action=delete owner=me@example.com lot_id=1a2b3c4d
    uv run lotkeeper action=import owner=me@example.com csv_path=exports/tfsa.tsv

    # Throwaway in-memory store:
    uv run lotkeeper storage.type=memory action=list owner=me@example.com
"""

import logging
import os

import hydra
import pandas as pd
from omegaconf import DictConfig, OmegaConf, open_dict

from lotkeeper.errors import LotKeeperError
from lotkeeper.portfolio.investments import InvestmentService
from lotkeeper.portfolio.valuation import lots_frame
from lotkeeper.storage import BaseLotStore, InMemoryLotStore, SqliteLotStore
from lotkeeper.utils.logger import setup_logger
from lotkeeper.utils.price_client import ApiNinjasPriceClient

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Builders: translate the YAML config into Python objects
# ---------------------------------------------------------------------------


def build_store(cfg: DictConfig) -> BaseLotStore:
    """Instantiate the right lot store from the Hydra config."""
    store_type = cfg.storage.type
    if store_type == "memory":
        return InMemoryLotStore()
    elif store_type == "sqlite":
        return SqliteLotStore(
            cfg.storage.get("path", ":memory:"), timeout=cfg.storage.get("timeout", 5.0)
        )
    else:
        raise ValueError(f"Unknown storage type: {store_type}")


def build_price_client(cfg: DictConfig) -> ApiNinjasPriceClient:
    price_cfg = cfg.price_api
    return ApiNinjasPriceClient(
        api_key=price_cfg.get("api_key", None),
        base_url=price_cfg.base_url,
        timeout=price_cfg.get("timeout", 10),
    )


def build_service(cfg: DictConfig, store: BaseLotStore) -> InvestmentService:
    categories = OmegaConf.select(cfg, "investments.categories", default=None)
    if categories is not None:
        categories = list(categories)
    return InvestmentService(store, categories=categories)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _require(cfg: DictConfig, *keys):
    missing = [k for k in keys if cfg.get(k) is None]
    if missing:
        raise ValueError(f"action={cfg.action} needs: {', '.join(missing)}")


def run_action(cfg: DictConfig, service: InvestmentService, price_client=None):
    """Run the action named by ``cfg.action`` and return its result.

    Returns a :class:`~lotkeeper.ledger.lot.Lot`, a
    :class:`~lotkeeper.ledger.lot.SellResult`, an
    :class:`~lotkeeper.portfolio.investments.ImportResult`, a DataFrame, or
    ``None`` for deletes.
    """
    action = cfg.action
    _require(cfg, "owner")
    owner = cfg.owner

    if action == "buy":
        _require(cfg, "ticker", "category", "quantity", "book_price")
        return service.buy(
            owner,
            cfg.ticker,
            cfg.quantity,
            cfg.book_price,
            cfg.category,
            purchase_date=cfg.get("purchase_date"),
        )
    elif action == "sell":
        _require(cfg, "ticker", "category", "quantity")
        return service.sell(owner, cfg.ticker, cfg.category, cfg.quantity)
    elif action == "list":
        return lots_frame(service.list_lots(owner))
    elif action == "update":
        _require(cfg, "lot_id")
        return service.update_lot(
            owner,
            cfg.lot_id,
            purchase_date=cfg.get("purchase_date"),
            book_price=cfg.get("book_price"),
            category=cfg.get("category"),
        )
    elif action == "delete":
        _require(cfg, "lot_id")
        service.delete_lot(owner, cfg.lot_id)
        return None
    elif action == "import":
        _require(cfg, "csv_path")
        return service.import_csv(owner, cfg.csv_path)
    elif action == "holdings":
        return service.holdings(owner)
    elif action == "quote":
        if price_client is None:
            raise ValueError("action=quote needs a price client")
        tickers = [lot.ticker for lot in service.list_lots(owner)]
        prices = price_client.get_prices(tickers)
        return service.category_totals(owner, prices)
    else:
        raise ValueError(f"Unknown action: {action}")


def format_result(result) -> str:
    if result is None:
        return "Done."
    if isinstance(result, pd.DataFrame):
        if result.empty:
            return "No investments found."
        return result.to_string()
    if hasattr(result, "depletions"):
        lines = [
            f"Sold {result.requested_quantity} {result.ticker} ({result.category}); "
            f"{result.owned_after} left, cost basis {result.cost_basis}"
        ]
        for d in result.depletions:
            state = "closed" if d.closed else f"{d.remaining_quantity} left"
            lines.append(
                f"  lot {d.lot_id} ({d.purchase_date.date()}): -{d.quantity_sold} @ {d.book_price}, {state}"
            )
        return "\n".join(lines)
    return str(result)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(cfg: DictConfig):
    """Run ``cfg.action`` against the configured store and print the result.

    A rejected action is logged and ends the process with exit code 1
    instead of a traceback.
    """
    try:
        with build_store(cfg) as store:
            service = build_service(cfg, store)
            price_client = build_price_client(cfg) if cfg.action == "quote" else None
            result = run_action(cfg, service, price_client)
    except (LotKeeperError, ValueError) as e:
        log.error("%s failed: %s", cfg.action, e)
        raise SystemExit(1)

    print(format_result(result))
    return result


@hydra.main(version_base=None, config_path="configs", config_name="config")
def main(cfg: DictConfig):
    # Resolve relative paths against the directory lotkeeper was started from
    orig_cwd = hydra.utils.get_original_cwd()
    with open_dict(cfg):
        db_path = OmegaConf.select(cfg, "storage.path")
        if db_path and db_path != ":memory:" and not os.path.isabs(db_path):
            cfg.storage.path = os.path.join(orig_cwd, db_path)
        log_dir = OmegaConf.select(cfg, "logging.log_dir")
        if log_dir and not os.path.isabs(log_dir):
            cfg.logging.log_dir = os.path.join(orig_cwd, log_dir)
        csv_path = cfg.get("csv_path")
        if csv_path and not os.path.isabs(csv_path):
            cfg.csv_path = os.path.join(orig_cwd, csv_path)

    setup_logger("lotkeeper", log_dir=OmegaConf.select(cfg, "logging.log_dir"))
    log.debug("Configuration:\n%s", OmegaConf.to_yaml(cfg))

    return run(cfg)


if __name__ == "__main__":
    main()
