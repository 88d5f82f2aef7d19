import asyncio, signal, logging, os, sys

from prometheus_client import start_http_server, Summary, Counter

from pricefeed.models    import load_config, Settings
from pricefeed.client    import ChainClient, validate_mnemonic
from pricefeed.errors    import SetupError
from pricefeed.rates     import NibidRateSource
from pricefeed.submitter import PriceSubmitter
from pricefeed.scheduler import Updater, Scheduler

log = logging.getLogger("main")

async def main(cfg: Settings) -> None:
    rt = cfg.runtime
    log.info("Starting price feed service...")
    log.info("Update interval: %dms (%g hours)", rt.interval_ms, rt.interval_ms / 3_600_000)

    # ─────────────────────────── Prometheus
    cycle_ms  = Summary("update_cycle_ms", "Price update cycle latency (ms)")
    updates_c = Counter("price_updates_total", "set_price 트랜잭션 건수", ['status'])
    if rt.metrics_port:
        start_http_server(rt.metrics_port)

    # ─────────────────────────── 지갑 + 노드 연결
    client = await ChainClient.connect(cfg)

    # ─────────────────────────── 파이프라인
    source    = NibidRateSource(cfg.rates.command)
    submitter = PriceSubmitter(client, cfg.contract_address, counter=updates_c)
    updater   = Updater(source, submitter, cycle_metric=cycle_ms)
    sched     = Scheduler(updater.update_all, rt.interval_sec,
                          allow_overlap=rt.allow_overlap)

    # ─────────────────────────── Graceful Shutdown
    loop_task = asyncio.ensure_future(sched.run())
    for sig in (signal.SIGINT, signal.SIGTERM):
        asyncio.get_running_loop().add_signal_handler(sig, loop_task.cancel)

    try:
        await loop_task
    except asyncio.CancelledError:
        log.info("price feed stopped")


def run() -> int:
    try:
        cfg = load_config(os.getenv("PRICEFEED_CONFIG", "config.yaml"))
    except Exception as e:
        logging.basicConfig(level=logging.INFO)
        log.error("invalid configuration: %s", e)
        return 1

    logging.basicConfig(
        level=cfg.runtime.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # 연결 전에 니모닉부터 확인
    ok = validate_mnemonic(cfg.mnemonic.get_secret_value())
    log.info("Is the mnemonic valid? %s", ok)
    if not ok:
        log.error("Failed to start price feed: invalid mnemonic")
        return 1

    try:
        asyncio.run(main(cfg))
    except SetupError as e:
        log.error("Failed to start price feed: %s", e)
        return 1
    return 0


# ─────────────────────────── 실행 진입점
if __name__ == "__main__":
    sys.exit(run())
