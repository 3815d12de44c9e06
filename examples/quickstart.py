"""Quickstart: configure a backend, upload, list, read back and delete.

Demonstrates:
- Building a RegistryConfig from a plain dict
- Getting a connected backend from the Registry
- put_file, walk, get_file_reader and delete_file

Swap the ``local`` entry for an ``sftp`` one to run against a real server::

    "offsite": {"type": "sftp", "options": {"address": "backup.example.com",
                "username": "ch", "key_path": "~/.ssh/id_ed25519",
                "root_path": "/backups"}}
"""

from __future__ import annotations

import io
import tempfile

from backup_storage import Registry, RegistryConfig

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        config = RegistryConfig.from_dict({"backends": {"offsite": {"type": "local", "options": {"root": tmp}}}})

        with Registry(config) as registry:
            backend = registry.get_backend("offsite")

            # Upload bytes and a stream; parent directories are created on demand
            backend.put_file("2024-06-01/manifest.json", b'{"files": 2}')
            backend.put_file("2024-06-01/data/chunk-0001.bin", io.BytesIO(b"\x00" * 4096))

            # List everything under the snapshot directory
            backend.walk("2024-06-01", recursive=True, visit=lambda f: print(f"  {f.name}: {f.size} bytes"))

            # Read back
            with backend.get_file_reader("2024-06-01/manifest.json") as reader:
                print(f"Manifest: {reader.read()!r}")

            # Remove the whole snapshot
            backend.delete_file("2024-06-01")

    print("Done! Temp directory cleaned up automatically.")
