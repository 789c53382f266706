"""
Remote credential rotation for a box.

One SSH session, one attempt:
1. set-writable     remount the box read/write
2. write-helper     upload the helper script over SFTP
3. invoke-helper    run it with the new secret on stdin
4. restart-service  restart the web service so the secret takes effect

Nothing is retried and nothing is rolled back. A failure after step 3 means
the box may already have the new secret; RotationError.credential_changed
says so and the caller decides what to show.
"""

import logging
import secrets
import shlex
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from kiosk import config

logger = logging.getLogger(__name__)

STEP_CONNECT = "connect"
STEP_WRITABLE = "set-writable"
STEP_WRITE_HELPER = "write-helper"
STEP_INVOKE_HELPER = "invoke-helper"
STEP_RESTART = "restart-service"


@dataclass
class RotationResult:
    address: str
    secret: str


class RotationError(Exception):
    def __init__(self, address: str, step: str, message: str, credential_changed: bool = False):
        super().__init__(f"[{address}] {step} failed: {message}")
        self.address = address
        self.step = step
        self.credential_changed = credential_changed


class RotationCancelled(RotationError):
    pass


def generate_secret(length: int = 16) -> str:
    return secrets.token_urlsafe(length)[:length]


def build_helper_script(password_command: str) -> str:
    return f"""#!/bin/bash
set -e
# usage: rotate_credential.sh <login-user>; new secret on stdin
read -r NEW_SECRET
printf '%s\\n' "$NEW_SECRET" | {password_command}
"""


class CredentialRotator:
    def __init__(
        self,
        ssh_user: str = config.SSH_USER,
        ssh_password: str = config.SSH_PASSWORD,
        login_user: str = config.LOGIN_USER,
        timeout: int = config.SSH_TIMEOUT,
        writable_command: str = config.WRITABLE_COMMAND,
        readonly_command: str = config.READONLY_COMMAND,
        password_command: str = config.PASSWORD_COMMAND,
        restart_command: str = config.RESTART_COMMAND,
        helper_path: str = "/tmp/rotate_credential.sh",
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
        secret_factory: Callable[[], str] = generate_secret,
    ):
        self.ssh_user = ssh_user
        self.ssh_password = ssh_password
        self.login_user = login_user
        self.timeout = timeout
        self.writable_command = writable_command
        self.readonly_command = readonly_command
        self.password_command = password_command
        self.restart_command = restart_command
        self.helper_path = helper_path
        self.client_factory = client_factory
        self.secret_factory = secret_factory

    def _run(self, client, address: str, step: str, command: str, stdin_data: Optional[str] = None,
             credential_changed: bool = False) -> str:
        try:
            stdin, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            if stdin_data is not None:
                stdin.write(stdin_data)
                stdin.flush()
                stdin.channel.shutdown_write()

            channel = stdout.channel
            if not channel.status_event.wait(self.timeout):
                raise RotationError(address, step, f"timed out after {self.timeout}s", credential_changed)
            exit_status = channel.recv_exit_status()
            if exit_status != 0:
                err = stderr.read().decode(errors="replace").strip()
                raise RotationError(address, step, f"exit {exit_status}: {err}", credential_changed)
            return stdout.read().decode(errors="replace")
        except (paramiko.SSHException, OSError) as e:
            # socket.timeout is an OSError
            raise RotationError(address, step, str(e) or type(e).__name__, credential_changed) from e

    def rotate(self, address: str, cancel: Optional[threading.Event] = None) -> RotationResult:
        """Swap the box login secret. Raises RotationError on any failed step."""
        secret = self.secret_factory()
        changed = False
        writable = False

        def check_cancel(next_step: str) -> None:
            if cancel is not None and cancel.is_set():
                raise RotationCancelled(address, next_step, "cancelled", changed)

        client = self.client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            check_cancel(STEP_CONNECT)
            logger.info("[%s] Connecting for credential rotation...", address)
            try:
                client.connect(
                    address,
                    username=self.ssh_user,
                    password=self.ssh_password,
                    timeout=self.timeout,
                    allow_agent=False,
                    look_for_keys=False,
                )
            except (paramiko.SSHException, OSError) as e:
                raise RotationError(address, STEP_CONNECT, str(e)) from e

            try:
                check_cancel(STEP_WRITABLE)
                self._run(client, address, STEP_WRITABLE, self.writable_command)
                writable = True

                check_cancel(STEP_WRITE_HELPER)
                logger.info("[%s] Uploading helper script...", address)
                try:
                    sftp = client.open_sftp()
                    try:
                        with sftp.file(self.helper_path, "w") as f:
                            f.write(build_helper_script(self.password_command))
                        sftp.chmod(self.helper_path, 0o700)
                    finally:
                        sftp.close()
                except (paramiko.SSHException, OSError) as e:
                    raise RotationError(address, STEP_WRITE_HELPER, str(e)) from e

                check_cancel(STEP_INVOKE_HELPER)
                self._run(
                    client,
                    address,
                    STEP_INVOKE_HELPER,
                    f"{shlex.quote(self.helper_path)} {shlex.quote(self.login_user)}",
                    stdin_data=secret + "\n",
                )
                changed = True

                check_cancel(STEP_RESTART)
                logger.info("[%s] Restarting service...", address)
                self._run(client, address, STEP_RESTART, self.restart_command, credential_changed=True)
            except (paramiko.SSHException, OSError) as e:
                raise RotationError(address, "ssh", str(e), changed) from e
            finally:
                if writable and self.readonly_command:
                    self._restore_readonly(client, address)
        finally:
            client.close()

        logger.info("[%s] Credential rotated", address)
        return RotationResult(address=address, secret=secret)

    def _restore_readonly(self, client, address: str) -> None:
        try:
            self._run(client, address, "set-readonly", self.readonly_command)
        except (RotationError, paramiko.SSHException) as e:
            logger.warning("[%s] Could not return box to read-only: %s", address, e)
