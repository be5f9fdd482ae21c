"""Block settlement entrypoint.

Credits pending balances for one confirmed block of one configured pool
and prunes the shares it made obsolete. Intended to be invoked by the
block confirmation job once the block reward is final.

Usage:
    poolpay-settle --pool btc1 --block-height 840000 \
        --reward 3.125 --created 2026-10-19T12:00:00+00:00
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import bittensor as bt
from dotenv import load_dotenv


def _parse_created(value: str) -> datetime:
    created = datetime.fromisoformat(value)
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created.astimezone(timezone.utc)


def _parse_reward(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid reward amount: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Settle a confirmed block (PPLNS)")
    parser.add_argument("--pool", type=str, required=True, help="Pool id from the pool config")
    parser.add_argument("--block-height", type=int, required=True)
    parser.add_argument("--reward", type=_parse_reward, required=True)
    parser.add_argument("--created", type=_parse_created, required=True,
                        help="Block timestamp (ISO 8601, UTC if no offset)")
    parser.add_argument("--hash", type=str, default=None)
    parser.add_argument("--pool-config", type=str, default="pools.json")
    parser.add_argument("--database-url", type=str, default=None)
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--debug", action="store_true")
    return parser


async def run(args: argparse.Namespace, pool_config_path: str, database_url: str) -> int:
    from poolpay.config.pool import get_pool_config, load_pool_configs
    from poolpay.database.manager import DBManager
    from poolpay.payments.models import Block
    from poolpay.payments.schemes import DEFAULT_PAGE_SIZE, get_payout_scheme
    from poolpay.payments.settlement import PaymentProcessor
    from poolpay.payments.store.sql import SqlPaymentsStore

    pool = get_pool_config(load_pool_configs(pool_config_path), args.pool)
    scheme = get_payout_scheme(
        pool.payment_processing.payout_scheme,
        page_size=args.page_size or DEFAULT_PAGE_SIZE,
    )
    block = Block(
        pool_id=pool.id,
        block_height=args.block_height,
        reward=args.reward,
        created=args.created,
        hash=args.hash,
    )

    db = DBManager(database_url)
    try:
        processor = PaymentProcessor(SqlPaymentsStore(db), scheme=scheme)
        results = await processor.settle_blocks(pool, [block])
    finally:
        await db.dispose()

    for result in results:
        bt.logging.info({
            "settle": {
                "pool": pool.id,
                "block_height": block.block_height,
                "recipients": len(result.payouts),
                "total": str(result.total),
                "cutoff": result.cutoff.isoformat() if result.cutoff else None,
            }
        })
    return 0


def main() -> None:
    # Load .env if not in test mode
    if os.environ.get("POOLPAY_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args()
    if args.debug:
        bt.logging.set_debug(True)

    # Env takes precedence over CLI
    pool_config_path = os.environ.get("POOLPAY_POOL_CONFIG", args.pool_config)
    database_url = os.environ.get("POOLPAY_DATABASE__URL", args.database_url or "")

    if not database_url:
        bt.logging.error("POOLPAY_DATABASE__URL or --database-url is required")
        sys.exit(1)

    try:
        code = asyncio.run(run(args, pool_config_path, database_url))
    except KeyError as e:
        bt.logging.error({"settle": {"status": "unknown_pool", "error": str(e)}})
        code = 1
    except KeyboardInterrupt:
        bt.logging.info({"settle": "keyboard_interrupt"})
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
