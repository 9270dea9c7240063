"""チェックイン端末エージェント - エントリーポイント"""
import argparse
import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv

from schedulers.scheduler import PollingScheduler
from services.attendance_registry import AttendanceRegistry
from services.checkin_controller import CheckInController
from services.config_loader import load_config
from services.errors import CheckInError
from services.slack_client import ConsoleNotifier, SlackNotifier
from services.tenant_resolver import TenantResolver
from services.token_scanner import OpenCVCamera, VisualTokenScanner
from services.worker_report import WorkerReport

logger = logging.getLogger("checkin_agent")

COLUMNS = ["Name", "Employee ID", "Department", "Date", "Time", "Presence"]


def resolve_tenant(config: dict, host: str = None) -> str:
    """設定・環境変数・引数の順でホスト名を決めてテナントを解決する"""
    tenant_config = config["tenant"]
    hostname = host or os.getenv("CHECKIN_HOSTNAME") or tenant_config["hostname"]
    resolver = TenantResolver(
        local_marker=tenant_config["local_marker"],
        hosting_domains=tenant_config["hosting_domains"],
    )
    return resolver.resolve(hostname)


def create_gateway(config: dict):
    """設定に基づいて勤怠ゲートウェイを生成"""
    backend = config["backend"]
    if backend.get("gateway", "http") == "dummy":
        from services.dummy_gateway import DummyAttendanceGateway
        return DummyAttendanceGateway()

    from services.attendance_gateway import HttpAttendanceGateway
    return HttpAttendanceGateway(
        base_url=os.getenv("ATTENDANCE_API_URL", backend["base_url"]),
        api_token=os.getenv("ATTENDANCE_API_TOKEN"),
        timeout=backend["timeout_seconds"],
    )


def create_notifier(config: dict, tenant_key: str):
    slack_config = config["slack"]
    slack_token = os.getenv("SLACK_BOT_TOKEN", "")
    slack_channel = os.getenv("SLACK_NOTIFY_CHANNEL", slack_config.get("notify_channel", ""))
    if slack_config["enabled"] and slack_token:
        return SlackNotifier(token=slack_token, channel=slack_channel, tenant_key=tenant_key)
    return ConsoleNotifier()


def print_table(rows: list[dict]):
    if not rows:
        print("No attendance records found.")
        return
    widths = {c: max(len(c), *(len(str(r[c])) for r in rows)) for c in COLUMNS}
    print("  ".join(c.ljust(widths[c]) for c in COLUMNS))
    for row in rows:
        print("  ".join(str(row[c]).ljust(widths[c]) for c in COLUMNS))


async def run_report(config: dict, tenant_key: str, rfid: str, date: str) -> int:
    """作業員の勤怠レポートを表示して終了"""
    gateway = create_gateway(config)
    report = WorkerReport(gateway, tenant_key, rfid)
    try:
        await report.load()
    except CheckInError as e:
        print(f"[チェックインエラー] {e}", file=sys.stderr)
        return 1
    finally:
        await gateway.close()
    print_table(report.view(date=date).display_rows())
    return 0


async def run_kiosk(config: dict, tenant_key: str) -> int:
    """QRスキャン＋手入力の受付を行う"""
    gateway = create_gateway(config)
    notifier = create_notifier(config, tenant_key)
    scheduler = PollingScheduler()
    registry = AttendanceRegistry()

    scanner = None
    scanner_config = config["scanner"]
    if scanner_config["enabled"]:
        scanner = VisualTokenScanner(
            camera=OpenCVCamera(scanner_config["camera_index"]),
            scheduler=scheduler,
            interval_ms=scanner_config["interval_ms"],
            repeat_cooldown_ms=scanner_config["repeat_cooldown_ms"],
        )

    controller = CheckInController(
        tenant_key=tenant_key,
        gateway=gateway,
        registry=registry,
        notifier=notifier,
        scheduler=scheduler,
        scanner=scanner,
        refresh_seconds=config["registry"]["refresh_interval_seconds"],
    )

    if not await controller.start():
        await gateway.close()
        return 1

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    pending: set[asyncio.Task] = set()

    async def manual_entry(line: str):
        try:
            await controller.submit_token(line, source="manual")
            print_table(registry.view().display_rows()[:10])
            print(f"在席: {len(registry.present_workers())}名")
        except Exception as e:
            logger.exception("手入力の処理中にエラー")
            notifier.send_error(str(e))

    def on_stdin():
        line = sys.stdin.readline()
        if not line:
            stop_event.set()
            return
        task = asyncio.ensure_future(manual_entry(line.strip()))
        pending.add(task)
        task.add_done_callback(pending.discard)

    loop.add_reader(sys.stdin, on_stdin)
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    print(f"[チェックイン] テナント {tenant_key} の受付を開始しました。RFIDを入力してEnter、Ctrl+Cで停止します")
    try:
        await stop_event.wait()
    finally:
        print("\n[チェックイン] 停止中...")
        loop.remove_reader(sys.stdin)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        controller.close()
        if scanner is not None:
            scanner.close()
        scheduler.stop()
        await gateway.close()
        print("[チェックイン] 停止しました")
    return 0


def main():
    """メイン起動処理"""
    parser = argparse.ArgumentParser(description="テナント別チェックイン端末")
    parser.add_argument("--config", default="config.yaml")
    parser.add_argument("--host", help="テナント解決に使うホスト名（例: acme.localhost）")
    parser.add_argument("--report", metavar="RFID", help="作業員の勤怠レポートを表示して終了")
    parser.add_argument("--date", default="", help="レポートの日付絞り込み（YYYY-MM-DD の前方一致）")
    args = parser.parse_args()

    load_dotenv()
    config = load_config(args.config)
    logging.basicConfig(
        level=config["logging"]["level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    tenant_key = resolve_tenant(config, args.host)
    if args.report:
        sys.exit(asyncio.run(run_report(config, tenant_key, args.report, args.date)))
    sys.exit(asyncio.run(run_kiosk(config, tenant_key)))


if __name__ == "__main__":
    main()
