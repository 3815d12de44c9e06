"""Error handling: catching NotFound, InvalidPath, DeleteError and friends.

Demonstrates the normalized error hierarchy and the structured ``path`` and
``backend`` attributes every error carries.
"""

from __future__ import annotations

import tempfile

from backup_storage import BackupStorageError, InvalidPath, NotConnected, NotFound
from backup_storage.backends import LocalBackend

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        backend = LocalBackend(root=tmp)

        # --- NotConnected before connect() ---
        try:
            backend.stat_file("anything.txt")
        except NotConnected as exc:
            print(f"NotConnected: {exc}")

        with backend:
            # --- NotFound ---
            try:
                backend.stat_file("nonexistent.txt")
            except NotFound as exc:
                print(f"\nNotFound: {exc}")
                print(f"  path={exc.path}, backend={exc.backend}")

            # --- InvalidPath (path traversal attempt) ---
            try:
                backend.get_file_reader("../../etc/passwd")
            except InvalidPath as exc:
                print(f"\nInvalidPath: {exc}")

            # --- Catch any storage error with the base class ---
            for key in ["missing.txt", "../escape", ""]:
                try:
                    backend.delete_file(key)
                except BackupStorageError as exc:
                    print(f"\nBackupStorageError ({type(exc).__name__}): {exc}")

    print("\nDone!")
