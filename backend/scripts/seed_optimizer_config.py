#!/usr/bin/env python3
"""
Create the default ads_optimization_config row if none exists.
Run from backend/: python -m scripts.seed_optimizer_config
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def main():
    from ads_optimizer.database import async_session, init_db
    from ads_optimizer.models import OptimizationConfig
    from sqlalchemy import select, func

    await init_db()

    async with async_session() as db:
        r = await db.execute(select(func.count()).select_from(OptimizationConfig))
        count = r.scalar() or 0
        if count > 0:
            print(f"Optimization config already exists ({count} row). Nothing to do.")
            sys.exit(0)

        config = OptimizationConfig()
        db.add(config)
        await db.commit()
        print(
            f"Created optimization config {config.id}: target_cpa={config.target_cpa}, "
            f"max_daily_budget={config.max_daily_budget}, approval_mode={config.approval_mode_enabled}"
        )


if __name__ == "__main__":
    asyncio.run(main())
