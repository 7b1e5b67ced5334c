"""TP-Link T-series CLI transport over SSH."""

from __future__ import annotations

import logging
import re
import time

import paramiko

from rolnet.switchctrl.base.transport import DEFAULT_TIMEOUT, BaseTransport
from rolnet.switchctrl.exceptions import AuthenticationError, SSHError

logger = logging.getLogger(__name__)

# Prompt patterns: TL-SG2210MP>  TL-SG2210MP#  TL-SG2210MP(config-if)#
PROMPT_PATTERN = re.compile(r"[\r\n][\w\-]+(\([\w\-]+\))?[>#]\s*$")
ENABLE_PROMPT_PATTERN = re.compile(r"[\r\n][\w\-]+#\s*$")
PASSWORD_PROMPT_PATTERN = re.compile(r"[Pp]assword:\s*$")

BUFFER_SIZE = 65535
READ_DELAY = 0.2

ERROR_MARKERS = ("error", "bad command", "invalid", "incomplete command", "%")


def output_has_error(output: str) -> bool:
    """Check CLI output for the markers the T-series firmware prints on failure."""
    lowered = output.lower()
    return any(marker in lowered for marker in ERROR_MARKERS)


class TPLinkCLITransport(BaseTransport):
    """SSH interactive shell for the TP-Link T-series (Cisco-like) CLI.

    Configuration commands need privileged mode; :meth:`enter_enable_mode` is
    called automatically on the first configuration batch.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 22,
        enable_password: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        super().__init__(host, username, password, port, timeout)
        self.enable_password = enable_password
        self._client: paramiko.SSHClient | None = None
        self._shell: paramiko.Channel | None = None
        self._privileged = False

    def connect(self) -> None:
        """Establish SSH connection and open interactive shell."""
        self._client = paramiko.SSHClient()
        self._client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            self._client.connect(
                hostname=self.host,
                port=self.port or 22,
                username=self.username,
                password=self.password,
                look_for_keys=False,
                allow_agent=False,
                timeout=self.timeout,
            )
        except paramiko.AuthenticationException as e:
            raise AuthenticationError(f"SSH authentication failed: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            raise SSHError(f"SSH connection failed: {e}") from e

        try:
            self._shell = self._client.invoke_shell(width=200)
            self._shell.settimeout(self.timeout)
        except (paramiko.SSHException, OSError) as e:
            raise SSHError(f"Failed to open shell on {self.host}: {e}") from e
        self._privileged = False

        self._read_until(PROMPT_PATTERN)
        logger.info("TP-Link SSH connected to %s", self.host)

    def disconnect(self) -> None:
        """Close SSH shell and connection."""
        if self._shell is not None:
            self._shell.close()
            self._shell = None
        if self._client is not None:
            self._client.close()
            self._client = None
        self._privileged = False

    def is_connected(self) -> bool:
        """Check if SSH connection and shell are active."""
        if self._client is None or self._shell is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active() and not self._shell.closed

    def enter_enable_mode(self) -> None:
        """Enter privileged EXEC mode."""
        if self._privileged:
            return
        output = self._send("enable", PROMPT_PATTERN, PASSWORD_PROMPT_PATTERN)
        if PASSWORD_PROMPT_PATTERN.search(output):
            output = self._send(self.enable_password or self.password, PROMPT_PATTERN)
        if not ENABLE_PROMPT_PATTERN.search(output):
            raise SSHError(f"Failed to enter enable mode. Output: {output}")
        self._privileged = True
        logger.debug("Entered enable mode on %s", self.host)

    def send_command(self, command: str) -> str:
        """Send a single command and return its output without echo and prompt."""
        self.ensure_connected()
        output = self._send(command, PROMPT_PATTERN)

        lines = output.splitlines()
        if lines and command in lines[0]:
            lines = lines[1:]
        if lines and PROMPT_PATTERN.search("\n" + lines[-1]):
            lines = lines[:-1]
        return "\n".join(lines).strip()

    def send_config_commands(self, commands: list[str]) -> str:
        """Enter global configuration mode, send commands, then return to privileged mode."""
        self.ensure_connected()
        self.enter_enable_mode()

        outputs = [self.send_command("configure")]
        for cmd in commands:
            outputs.append(self.send_command(cmd))
        outputs.append(self.send_command("end"))
        return "\n".join(o for o in outputs if o)

    def _send(self, command: str, *patterns: re.Pattern[str]) -> str:
        if self._shell is None:
            raise SSHError("Not connected. Call connect() first.")
        try:
            self._shell.send((command + "\n").encode())
        except (paramiko.SSHException, OSError) as e:
            raise SSHError(f"Failed to send command to {self.host}: {e}") from e
        return self._read_until(*patterns)

    def _read_until(self, *patterns: re.Pattern[str]) -> str:
        """Read shell output until one of ``patterns`` matches or the timeout elapses."""
        assert self._shell is not None
        output = ""
        start = time.time()

        while time.time() - start < self.timeout:
            try:
                ready = self._shell.recv_ready()
                if ready:
                    output += self._shell.recv(BUFFER_SIZE).decode("utf-8", errors="replace")
            except (paramiko.SSHException, OSError) as e:
                raise SSHError(f"Connection to {self.host} lost: {e}") from e
            if not ready:
                time.sleep(READ_DELAY)
            elif any(p.search(output) for p in patterns):
                return output

        raise SSHError(f"Timed out waiting for prompt from {self.host}. Output so far: {output!r}")
