from typing import Optional, Sequence


class PriceFeedError(Exception):
    pass


class SetupError(PriceFeedError):
    """지갑 / 노드 연결 실패 – 프로세스 종료 대상"""


class CommandExecutionError(PriceFeedError):
    """환율 조회 커맨드 실패 (exit != 0 또는 JSON 파싱 실패)"""
    def __init__(self,
                 msg: str,
                 cmd: Sequence[str] = (),
                 returncode: Optional[int] = None,
                 stdout: str = "",
                 stderr: str = ""):
        super().__init__(msg)
        self.cmd        = tuple(cmd)
        self.returncode = returncode
        self.stdout     = stdout
        self.stderr     = stderr


class BroadcastError(PriceFeedError):
    """단일 token 의 set_price 트랜잭션 실패"""
    def __init__(self, msg: str, token_id: int):
        super().__init__(msg)
        self.token_id = token_id
