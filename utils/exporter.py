# utils/exporter.py
import asyncio
import logging
import pandas as pd

logger = logging.getLogger(__name__)

COLUMNS = ["id", "pair", "date", "time", "direction", "risk", "result",
           "result_type", "risk_reward", "emotion", "notes", "screenshots"]


def trades_frame(trades) -> pd.DataFrame:
    data = []
    for r in trades:
        data.append({
            "id": r.id,
            "pair": r.pair,
            "date": r.date,
            "time": r.time,
            "direction": r.direction.value,
            "risk": r.risk,
            "result": r.result,
            "result_type": r.result_type.value,
            "risk_reward": r.risk_reward,
            "emotion": r.emotion.value,
            "notes": r.notes,
            "screenshots": len(r.screenshot_refs),  # data URLs are too large for a sheet
        })
    return pd.DataFrame(data, columns=COLUMNS)


def export_trades_sync(trades, path: str) -> bool:
    try:
        trades_frame(trades).to_csv(path, index=False)
        return True
    except OSError as e:
        logger.warning(f"export error: {e}")
        return False


async def export_trades(trades, path: str):
    return await asyncio.to_thread(export_trades_sync, trades, path)
