# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
One-shot isolated execution of untrusted Python code.

Every run gets a fresh interpreter in isolated mode (`python -I`), started in
an empty temporary directory with a scrubbed environment. The code travels on
stdin, and the child writes a single JSON outcome to a file whose name is
random per run, so nothing the code prints can be mistaken for it. The
process and its directory are torn down straight after. Nothing is pooled or
reused.
"""

import os
import sys
import json
import uuid
import asyncio
import logging
import tempfile

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, model_validator

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

OUTCOME_PREFIX = ".sandbox-outcome-"

# Output kept per stream; the rest is read and dropped
MAX_OUTPUT_CHARS = 64_000
TRUNCATED_NOTE = "\n[output truncated]"

# Runs inside the child, with the outcome path as its only argument. The value
# of a trailing expression is reported the way a REPL would show it.
RUNNER = f"""
import ast, io, json, sys, contextlib

class CappedOutput(io.StringIO):
    truncated = False

    def write(self, s):
        room = {MAX_OUTPUT_CHARS} - self.tell()
        if len(s) > room:
            self.truncated = True
        if room > 0:
            super().write(s[:room])
        return len(s)

def capped(text):
    if len(text) > {MAX_OUTPUT_CHARS}:
        return text[:{MAX_OUTPUT_CHARS}] + {TRUNCATED_NOTE!r}
    return text

outcome_path = sys.argv[1]
code = sys.stdin.read()
captured = CappedOutput()
outcome = {{}}
try:
    tree = ast.parse(code, filename="<sandbox>", mode="exec")
    last = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = ast.Expression(tree.body.pop().value)
    namespace = {{"__name__": "__sandbox__"}}
    with contextlib.redirect_stdout(captured):
        exec(compile(tree, "<sandbox>", "exec"), namespace)
        value = eval(compile(last, "<sandbox>", "eval"), namespace) if last is not None else None
    outcome["result"] = capped(repr(value))
except BaseException as e:
    outcome["error"] = capped(f"{{type(e).__name__}}: {{e}}")
outcome["stdout"] = captured.getvalue() + ({TRUNCATED_NOTE!r} if captured.truncated else "")
with open(outcome_path, "w", encoding="utf-8") as f:
    json.dump(outcome, f)
"""


async def read_capped(stream: asyncio.StreamReader, limit: int) -> tuple[bytes, bool]:
    """Drains `stream`, keeping at most `limit` bytes. Returns the kept bytes
    and whether anything was dropped."""
    kept = bytearray()
    dropped = False
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            break
        room = limit - len(kept)
        if len(chunk) > room:
            dropped = True
        if room > 0:
            kept.extend(chunk[:room])
    return bytes(kept), dropped


class SandboxOutcome(BaseModel):
    """Exactly one of `result` or `error` is populated."""

    result: Optional[str] = None
    error: Optional[str] = None
    stdout: str = ""

    @model_validator(mode="after")
    def exactly_one(self) -> "SandboxOutcome":
        if (self.result is None) == (self.error is None):
            raise ValueError("a sandbox outcome carries exactly one of result or error")
        return self

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class SandboxExecutor:
    """Runs code in a throwaway interpreter process with a wall-clock timeout."""

    def __init__(self, timeout: float = 10.0, python: Optional[str] = None):
        self.timeout = timeout
        self.python = python or sys.executable

    def _environment(self) -> dict[str, str]:
        return {"PATH": os.environ.get("PATH", ""), "PYTHONIOENCODING": "utf-8"}

    async def _teardown(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            process.kill()  # Force kill if terminate didn't work
            await process.wait()

    async def _communicate(
        self, process: asyncio.subprocess.Process, code: str
    ) -> tuple[str, str]:
        try:
            process.stdin.write(code.encode())
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # The child died before reading its code; its stderr says why
            pass
        finally:
            process.stdin.close()

        (stdout, out_dropped), (stderr, _) = await asyncio.gather(
            read_capped(process.stdout, MAX_OUTPUT_CHARS),
            read_capped(process.stderr, MAX_OUTPUT_CHARS),
        )
        await process.wait()

        text = stdout.decode(errors="replace")
        if out_dropped:
            text += TRUNCATED_NOTE
        return text, stderr.decode(errors="replace")

    async def run(self, code: str) -> SandboxOutcome:
        """Executes `code` once and returns its outcome.

        Cancellation kills the child before the CancelledError propagates.
        """
        with tempfile.TemporaryDirectory(prefix="sandbox-") as workdir:
            outcome_path = Path(workdir) / f"{OUTCOME_PREFIX}{uuid.uuid4().hex}.json"
            try:
                process = await asyncio.create_subprocess_exec(
                    self.python,
                    "-I",
                    "-c",
                    RUNNER,
                    str(outcome_path),
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env=self._environment(),
                )
            except OSError as e:
                return SandboxOutcome(error=f"Could not start sandbox: {e}")

            try:
                stdout, stderr = await asyncio.wait_for(
                    self._communicate(process, code), timeout=self.timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Sandbox run exceeded {self.timeout}s, killing it")
                return SandboxOutcome(
                    error=f"Execution timed out after {self.timeout} seconds"
                )
            finally:
                await self._teardown(process)

            raw_outcome = None
            if outcome_path.exists():
                raw_outcome = outcome_path.read_text(encoding="utf-8", errors="replace")

        return self._parse_outcome(raw_outcome, stdout, stderr, process.returncode)

    @staticmethod
    def _parse_outcome(
        raw_outcome: Optional[str], stdout: str, stderr: str, returncode: int | None
    ) -> SandboxOutcome:
        if raw_outcome is None:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
            return SandboxOutcome(
                error=f"Sandbox exited with code {returncode}: {detail}",
                stdout=stdout,
            )
        try:
            data = json.loads(raw_outcome)
        except json.JSONDecodeError as e:
            return SandboxOutcome(error=f"Malformed sandbox outcome: {e}", stdout=stdout)
        if not isinstance(data, dict):
            return SandboxOutcome(error="Malformed sandbox outcome", stdout=stdout)

        # Anything written straight to the real stdout follows what was captured
        captured = str(data.get("stdout", "")) + stdout.rstrip("\n")
        if "error" in data:
            return SandboxOutcome(error=str(data["error"]), stdout=captured)
        return SandboxOutcome(result=str(data.get("result")), stdout=captured)
