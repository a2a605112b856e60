"""
本地 git 命令封装（子进程，非阻塞）。

- `git` 非零退出 / 无法启动都转为 `TransportError`
- 只解析 `--name-status` 输出，不做任何 diff 语义分析
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

import anyio

from ai_reviewer.errors import TransportError

_STATUSES = "AMDRTC"


class NameStatusEntry(NamedTuple):
    status: str
    old_path: str
    new_path: str


async def run_git(args: Sequence[str], cwd: str) -> str:
    command = ["git", "-c", "core.quotepath=off", *args]
    try:
        result = await anyio.run_process(command, cwd=cwd, check=False)
    except OSError as exc:
        raise TransportError(f"Failed to run git {' '.join(args)}: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip() if result.stderr else ""
        raise TransportError(f"git {' '.join(args)} exited with {result.returncode}: {stderr}")
    return result.stdout.decode("utf-8", errors="replace") if result.stdout else ""


def parse_name_status(output: str) -> list[NameStatusEntry]:
    """
    解析 `git diff/show --name-status`：

        M\tsrc/app.py
        R100\told.py\tnew.py
    """
    entries: list[NameStatusEntry] = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2 or not parts[0]:
            continue
        status = parts[0][0]
        if status not in _STATUSES:
            continue
        if status in "RC" and len(parts) >= 3:
            entries.append(NameStatusEntry(status=status, old_path=parts[1], new_path=parts[2]))
        else:
            entries.append(NameStatusEntry(status=status, old_path=parts[1], new_path=parts[1]))
    return entries
