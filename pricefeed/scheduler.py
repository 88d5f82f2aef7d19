import asyncio, logging, time
from typing import Any, Awaitable, Callable, Optional

from .errors import BroadcastError, CommandExecutionError
from .models import TxResult
from .rates import RateSource
from .submitter import PriceSubmitter


class Updater:
    """한 cycle: 환율 조회 1회 → token 별 set_price 를 순차 전송"""

    def __init__(self,
                 source: RateSource,
                 submitter: PriceSubmitter,
                 cycle_metric: Any = None):   # prometheus_client.Summary
        self.source       = source
        self.submitter    = submitter
        self.cycle_metric = cycle_metric
        self.log          = logging.getLogger("Updater")

    async def update_all(self) -> dict[int, TxResult]:
        start = time.perf_counter()
        done: dict[int, TxResult] = {}
        try:
            try:
                prices = await self.source.fetch()
            except CommandExecutionError as e:
                self.log.error("Failed to update prices: %s", e)
                return done

            # 동시 전송 금지 – 하나씩 await
            for tid, price in prices.items():
                try:
                    done[tid] = await self.submitter.submit(tid, price)
                    self.log.info("Updated price for token %d: %s USD", tid, price)
                except BroadcastError as e:
                    self.log.error("Failed to update price for token %d: %s", tid, e)
            return done
        finally:
            if self.cycle_metric is not None:
                self.cycle_metric.observe((time.perf_counter() - start) * 1000)


class Scheduler:
    """
    시작 즉시 1회, 이후 interval 마다 cycle 을 task 로 실행.
    interval 은 직전 trigger 기준이며 cycle 소요시간과 무관하다.
    allow_overlap=False 이면 진행 중인 cycle 이 있을 때 trigger 를 건너뛴다.
    """
    IDLE     = "Idle"
    UPDATING = "Updating"

    def __init__(self,
                 cycle: Callable[[], Awaitable[Any]],
                 interval_sec: float,
                 allow_overlap: bool = True,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.cycle         = cycle
        self.interval      = interval_sec
        self.allow_overlap = allow_overlap
        self.sleep         = sleep
        self.triggers      = 0
        self.skipped       = 0
        self._inflight: set[asyncio.Task] = set()
        self.log           = logging.getLogger("Scheduler")

    @property
    def state(self) -> str:
        return self.UPDATING if self._inflight else self.IDLE

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    def _fire(self):
        self.triggers += 1
        if self._inflight and not self.allow_overlap:
            self.skipped += 1
            self.log.warning("trigger #%d skipped – %d cycle(s) still running",
                             self.triggers, len(self._inflight))
            return
        if self._inflight:
            self.log.warning("trigger #%d overlaps %d running cycle(s)",
                             self.triggers, len(self._inflight))
        task = asyncio.create_task(self._guarded(self.triggers))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _guarded(self, n: int):
        self.log.debug("cycle #%d start", n)
        try:
            await self.cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # cycle 하나가 죽어도 루프는 계속
            self.log.error("cycle #%d crashed: %s", n, e, exc_info=True)
        else:
            self.log.debug("cycle #%d done", n)

    async def run(self, max_triggers: Optional[int] = None):
        try:
            while True:
                self._fire()
                if self.triggers == 1:
                    self.log.info("Price feed service started successfully (next update in %gs)",
                                  self.interval)
                if max_triggers is not None and self.triggers >= max_triggers:
                    return
                await self.sleep(self.interval)
        except asyncio.CancelledError:
            for t in list(self._inflight):
                t.cancel()
            raise

    async def drain(self):
        """진행 중인 cycle 이 모두 끝날 때까지 대기"""
        while self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
