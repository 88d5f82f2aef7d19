import asyncio, json, logging
from typing import Any, Mapping, Protocol, Sequence

from .errors import CommandExecutionError
from .models import TOKEN_IDS


class RateSource(Protocol):
    async def fetch(self) -> dict[int, str]: ...


def map_rates(doc: Mapping[str, Any]) -> dict[int, str]:
    """
    {"exchange_rates": [{"pair": "ubtc:uusd", "exchange_rate": "..."}, ...]}
    → {token_id: rate}.  등록 안 된 심볼은 무시, 중복 시 마지막 값 사용
    """
    try:
        entries = doc["exchange_rates"]
        out: dict[int, str] = {}
        for rate in entries:
            base = rate["pair"].split(":")[0]
            tid  = TOKEN_IDS.get(base)
            if tid is not None:
                out[tid] = rate["exchange_rate"]
        return out
    except (KeyError, TypeError, AttributeError) as e:
        raise CommandExecutionError(f"unexpected exchange-rates document: {e!r}") from e


class NibidRateSource:
    """`nibid q oracle exchange-rates -o json` 을 subprocess 로 실행"""

    def __init__(self, cmd: Sequence[str]):
        self.cmd = tuple(cmd)
        self.log = logging.getLogger("NibidRateSource")

    async def _run(self) -> tuple[int, str, str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE)
        except OSError as e:
            raise CommandExecutionError(f"cannot start {self.cmd[0]}: {e}",
                                        cmd=self.cmd) from e
        try:
            out, err = await proc.communicate()
        except asyncio.CancelledError:
            # 종료 시 nibid 자식 프로세스 정리
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, out.decode(errors="replace"), err.decode(errors="replace")

    async def fetch(self) -> dict[int, str]:
        try:
            code, out, err = await self._run()
            if code != 0:
                raise CommandExecutionError(f"command exited with {code}",
                                            cmd=self.cmd, returncode=code,
                                            stdout=out, stderr=err)
            try:
                doc = json.loads(out)
            except json.JSONDecodeError as e:
                raise CommandExecutionError(f"invalid JSON output: {e}",
                                            cmd=self.cmd, returncode=code,
                                            stdout=out, stderr=err) from e
            try:
                rates = map_rates(doc)
            except CommandExecutionError as e:
                raise CommandExecutionError(str(e), cmd=self.cmd, returncode=code,
                                            stdout=out, stderr=err) from e
        except CommandExecutionError as e:
            self.log.error("Error fetching exchange rates: %s", e)
            self.log.error("Command output: %s", e.stdout)
            self.log.error("Command stderr: %s", e.stderr)
            raise

        self.log.info("fetched %d mapped rate(s): %s", len(rates), rates)
        return rates


class StaticRateSource:
    """고정 응답 (테스트 / dry-run 용)"""

    def __init__(self, doc: Mapping[str, Any]):
        self.doc   = doc
        self.calls = 0

    async def fetch(self) -> dict[int, str]:
        self.calls += 1
        return map_rates(self.doc)
