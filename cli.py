import argparse
import asyncio
import logging
import shutil

from config import YamlConfig
from db import Database, RecordStore
from history_service import HistoryService
from template_service import ExerciseCatalog


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def vacuum_db(db_path: str) -> None:
    Database(db_path).vacuum()


def seed_catalog(db_path: str) -> int:
    """Write the default exercise catalog if none exists and return its size."""
    exercises = asyncio.run(ExerciseCatalog(RecordStore(db_path)).load())
    return len(exercises)


def dashboard_lines(db_path: str) -> list[str]:
    data = asyncio.run(HistoryService(RecordStore(db_path)).dashboard())
    lines = ["Templates:"]
    for item in data["templates"]:
        template = item["template"]
        last = item["last_performed"]
        when = last.date().isoformat() if last else "never"
        lines.append(
            f"  {template.name} ({len(template.exercises)} exercises), last: {when}"
        )
    lines.append("Recent sessions:")
    for session in data["recent_sessions"]:
        lines.append(
            f"  {session.date.date().isoformat()} {session.template_name}: "
            f"{len(session.exercises)} exercises"
        )
    return lines


def update_preferences(
    db_path: str, dark: str | None = None, limit_delta: int | None = None
) -> dict:
    prefs = RecordStore(db_path).preferences

    async def run() -> dict:
        if dark is not None:
            await prefs.save_dark_mode(dark == "on")
        if limit_delta:
            await prefs.adjust_dashboard_limit(limit_delta)
        return {
            "dark_mode": await prefs.load_dark_mode(),
            "dashboard_limit": await prefs.load_dashboard_limit(),
        }

    return asyncio.run(run())


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--config", default="settings.yaml")
    parser.add_argument("--db", default=None, help="override the configured database")
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    sub.add_parser("vacuum")
    sub.add_parser("seed")
    sub.add_parser("dashboard")

    prefs = sub.add_parser("prefs")
    prefs.add_argument("--dark", choices=["on", "off"])
    prefs.add_argument("--limit-delta", type=int)

    args = parser.parse_args()
    settings = YamlConfig(args.config).load()
    logging.basicConfig(
        level=settings["log_level"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    db_path = args.db or settings["db_path"]

    if args.cmd == "backup":
        backup_db(db_path, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, db_path)
    elif args.cmd == "vacuum":
        vacuum_db(db_path)
    elif args.cmd == "seed":
        print(f"Exercise catalog contains {seed_catalog(db_path)} exercises")
    elif args.cmd == "dashboard":
        print("\n".join(dashboard_lines(db_path)))
    elif args.cmd == "prefs":
        result = update_preferences(db_path, args.dark, args.limit_delta)
        print(f"dark mode: {'on' if result['dark_mode'] else 'off'}")
        print(f"dashboard sessions: {result['dashboard_limit']}")


if __name__ == "__main__":
    main()
