"""Backend test fixtures -- parameterized for conformance testing."""

from __future__ import annotations

import shutil
import tempfile
from typing import TYPE_CHECKING

import paramiko
import pytest

from backup_storage.backends._local import LocalBackend
from tests.backends.sftp_server import SFTPServerInfo, make_sftp_backend, start_sftp_server, stop_sftp_server

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from backup_storage._backend import RemoteStorage


@pytest.fixture(scope="session")
def sftp_server() -> Iterator[SFTPServerInfo]:
    """Start an in-process SFTP server for the test session."""
    tmpdir = tempfile.mkdtemp(prefix="sftp_test_")

    thread, port, host_key, stop_event, server_socket = start_sftp_server(root=tmpdir, host="127.0.0.1")

    # Build a known_hosts entry for the test server
    key_type = host_key.get_name()
    key_b64 = host_key.get_base64()
    host_key_entry = f"[127.0.0.1]:{port} {key_type} {key_b64}"

    yield SFTPServerInfo(port=port, host_key_entry=host_key_entry, root=tmpdir)

    stop_sftp_server(thread, stop_event, server_socket)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture(scope="session")
def client_key_path(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Private key file the client authenticates with."""
    path: Path = tmp_path_factory.mktemp("keys") / "id_rsa"
    paramiko.RSAKey.generate(2048).write_private_key_file(str(path))
    return str(path)


@pytest.fixture(params=["local", "sftp"])
def backend(
    request: pytest.FixtureRequest,
    sftp_server: SFTPServerInfo,
    client_key_path: str,
) -> Iterator[RemoteStorage]:
    """Parameterized, connected backend fixture. Add new backends here."""
    if request.param == "local":
        with tempfile.TemporaryDirectory() as tmp:
            b: RemoteStorage = LocalBackend(root=tmp)
            b.connect()
            yield b
            b.close()
    elif request.param == "sftp":
        b = make_sftp_backend(sftp_server, client_key_path)
        b.connect()
        yield b
        b.close()
    else:
        pytest.skip(f"Unknown backend: {request.param}")
