import socket
import threading

import pytest

from kiosk.rotator import (
    STEP_CONNECT,
    STEP_INVOKE_HELPER,
    STEP_RESTART,
    STEP_WRITABLE,
    CredentialRotator,
    RotationCancelled,
    RotationError,
)


class FakeChannel:
    def __init__(self, exit_status=0, finished=True):
        self.status_event = threading.Event()
        if finished:
            self.status_event.set()
        self.exit_status = exit_status
        self.write_closed = False

    def recv_exit_status(self):
        return self.exit_status

    def shutdown_write(self):
        self.write_closed = True


class FakeStream:
    def __init__(self, channel, data=b"", read_error=None):
        self.channel = channel
        self.data = data
        self.read_error = read_error
        self.written = []

    def read(self):
        if self.read_error:
            raise self.read_error
        return self.data

    def write(self, text):
        self.written.append(text)

    def flush(self):
        pass


class FakeRemoteFile:
    def __init__(self, sftp, path):
        self.sftp = sftp
        self.path = path

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def write(self, text):
        self.sftp.files[self.path] = text


class FakeSFTP:
    def __init__(self):
        self.files = {}
        self.modes = {}
        self.closed = False

    def file(self, path, mode):
        return FakeRemoteFile(self, path)

    def chmod(self, path, mode):
        self.modes[path] = mode

    def close(self):
        self.closed = True


class FakeSSHClient:
    def __init__(self, exit_codes=None, hang=(), connect_error=None, read_errors=None):
        self.exit_codes = exit_codes or {}
        self.hang = hang
        self.read_errors = read_errors or {}
        self.connect_error = connect_error
        self.commands = []
        self.stdin_by_command = {}
        self.sftp = FakeSFTP()
        self.connected_to = None
        self.closed = False

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def connect(self, address, **kwargs):
        if self.connect_error:
            raise self.connect_error
        self.connected_to = address
        self.connect_kwargs = kwargs

    def exec_command(self, command, timeout=None):
        self.commands.append(command)
        channel = FakeChannel(self.exit_codes.get(command, 0), finished=command not in self.hang)
        stdin = FakeStream(channel)
        self.stdin_by_command[command] = stdin
        stdout = FakeStream(channel, b"ok", read_error=self.read_errors.get(command))
        return stdin, stdout, FakeStream(channel, b"boom")

    def open_sftp(self):
        return self.sftp

    def close(self):
        self.closed = True


def _rotator(client, **kwargs):
    defaults = dict(
        ssh_user="root",
        ssh_password="pw",
        login_user="admin",
        timeout=0,
        writable_command="rw",
        readonly_command="ro",
        password_command='kvmd-htpasswd set "$1" -i',
        restart_command="systemctl restart kvmd-nginx",
        client_factory=lambda: client,
        secret_factory=lambda: "n3w-secret",
    )
    defaults.update(kwargs)
    return CredentialRotator(**defaults)


INVOKE = "/tmp/rotate_credential.sh admin"


def test_rotation_runs_all_steps_in_order():
    client = FakeSSHClient()
    result = _rotator(client).rotate("10.1.1.4")

    assert result.secret == "n3w-secret"
    assert result.address == "10.1.1.4"
    assert client.connected_to == "10.1.1.4"
    assert client.commands == ["rw", INVOKE, "systemctl restart kvmd-nginx", "ro"]
    assert client.stdin_by_command[INVOKE].written == ["n3w-secret\n"]
    assert client.stdin_by_command[INVOKE].channel.write_closed
    helper = client.sftp.files["/tmp/rotate_credential.sh"]
    assert 'kvmd-htpasswd set "$1" -i' in helper
    assert "n3w-secret" not in helper
    assert client.sftp.modes["/tmp/rotate_credential.sh"] == 0o700
    assert client.closed


def test_restart_failure_reports_changed_credential():
    client = FakeSSHClient(exit_codes={"systemctl restart kvmd-nginx": 1})
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")

    assert info.value.step == STEP_RESTART
    assert info.value.credential_changed is True
    # read-only mode is still restored, nothing is retried
    assert client.commands == ["rw", INVOKE, "systemctl restart kvmd-nginx", "ro"]
    assert client.closed


def test_writable_failure_stops_before_anything_changes():
    client = FakeSSHClient(exit_codes={"rw": 2})
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")

    assert info.value.step == STEP_WRITABLE
    assert info.value.credential_changed is False
    assert client.commands == ["rw"]
    assert client.sftp.files == {}


def test_connect_failure():
    client = FakeSSHClient(connect_error=OSError("no route to host"))
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")
    assert info.value.step == STEP_CONNECT
    assert client.commands == []
    assert client.closed


def test_hung_command_times_out():
    client = FakeSSHClient(hang=("systemctl restart kvmd-nginx",))
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")
    assert info.value.step == STEP_RESTART
    assert "timed out" in str(info.value)


def test_cancelled_before_start():
    client = FakeSSHClient()
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RotationCancelled):
        _rotator(client).rotate("10.1.1.4", cancel=cancel)
    assert client.connected_to is None


def test_socket_timeout_during_restart_keeps_changed_flag():
    client = FakeSSHClient(read_errors={"systemctl restart kvmd-nginx": socket.timeout("timed out")})
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")

    assert info.value.step == STEP_RESTART
    assert info.value.credential_changed is True
    assert client.commands[-1] == "ro"
    assert client.closed


def test_broken_pipe_while_feeding_secret():
    class BrokenStdinClient(FakeSSHClient):
        def exec_command(self, command, timeout=None):
            stdin, stdout, stderr = super().exec_command(command, timeout)
            if command == INVOKE:
                def write(text):
                    raise BrokenPipeError("channel closed")
                stdin.write = write
            return stdin, stdout, stderr

    client = BrokenStdinClient()
    with pytest.raises(RotationError) as info:
        _rotator(client).rotate("10.1.1.4")

    assert info.value.step == STEP_INVOKE_HELPER
    assert info.value.credential_changed is False
    assert client.commands == ["rw", INVOKE, "ro"]
