import json
import os
import tempfile
import threading
import time
import unittest

from passkeyflow.errors import InvalidInput, NotFound, StorageError
from passkeyflow.store import DeviceRecord, UserEntity, UserRecord, UserRecordStore


class TestUserRecordStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = UserRecordStore(self._tmp.name)

    def _record(self) -> UserRecord:
        record = UserRecord(user=UserEntity(id="0f1e", name="alice", display_name="Alice"))
        record.put_device(
            DeviceRecord(
                name="phone",
                origin="http://localhost:8080",
                challenge=b"\x00\x01pending",
                credential_id="Y3JlZA",
                public_key=b"\xa5\x01\x02",
                sign_count=7,
            )
        )
        return record

    def test_unknown_user_is_not_found(self) -> None:
        with self.assertRaises(NotFound):
            self.store.read("nobody")
        self.assertFalse(self.store.exists("nobody"))

    def test_not_found_is_a_key_error(self) -> None:
        with self.assertRaises(KeyError):
            self.store.read("nobody")

    def test_written_record_is_read_back(self) -> None:
        self.store.write("alice", self._record())

        self.assertTrue(self.store.exists("alice"))
        loaded = self.store.read("alice")
        self.assertEqual(loaded, self._record())

    def test_one_document_per_user(self) -> None:
        self.store.write("alice", self._record())
        path = os.path.join(self._tmp.name, "users", "alice.json")
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        self.assertEqual(payload["user"]["name"], "alice")
        self.assertEqual(payload["devices"]["phone"]["credentialId"], "Y3JlZA")
        self.assertEqual(payload["devices"]["phone"]["signCount"], 7)

    def test_cleared_challenge_is_stored_as_null(self) -> None:
        record = self._record()
        record.devices["phone"].challenge = None
        self.store.write("alice", record)
        self.assertIsNone(self.store.read("alice").devices["phone"].challenge)

    def test_corrupt_json_is_a_storage_error(self) -> None:
        path = os.path.join(self._tmp.name, "users", "alice.json")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write("{not json")
        with self.assertRaises(StorageError):
            self.store.read("alice")

    def test_incomplete_record_is_a_storage_error(self) -> None:
        path = os.path.join(self._tmp.name, "users", "alice.json")
        with open(path, "w", encoding="utf-8") as handle:
            json.dump({"devices": {}}, handle)
        with self.assertRaises(StorageError) as ctx:
            self.store.read("alice")
        self.assertNotIsInstance(ctx.exception, NotFound)

    def test_mismatched_device_key_is_a_storage_error(self) -> None:
        payload = self._record().to_dict()
        payload["devices"] = {"tablet": payload["devices"]["phone"]}
        path = os.path.join(self._tmp.name, "users", "alice.json")
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        with self.assertRaises(StorageError):
            self.store.read("alice")

    def test_unwritable_store_is_a_storage_error(self) -> None:
        os.rmdir(os.path.join(self._tmp.name, "users"))
        with self.assertRaises(StorageError):
            self.store.write("alice", self._record())

    def test_unsafe_names_rejected(self) -> None:
        for name in ("", "../alice", "a/b", ".hidden"):
            with self.subTest(name=name):
                with self.assertRaises(InvalidInput):
                    self.store.read(name)

    def test_lock_serializes_same_user(self) -> None:
        events = []

        def worker(tag: str) -> None:
            with self.store.lock("alice"):
                events.append(f"{tag}-in")
                time.sleep(0.05)
                events.append(f"{tag}-out")

        threads = [threading.Thread(target=worker, args=(tag,)) for tag in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(events), 4)
        self.assertEqual(events[0][0], events[1][0])
        self.assertEqual(events[2][0], events[3][0])

    def test_released_locks_are_dropped(self) -> None:
        with self.store.lock("alice"):
            self.assertIn("alice", self.store._locks)
        with self.assertRaises(NotFound):
            with self.store.lock("ghost"):
                self.store.read("ghost")
        self.assertEqual(self.store._locks, {})

    def test_failed_write_leaves_no_temp_file(self) -> None:
        record = self._record()
        record.devices["phone"].sign_count = object()  # type: ignore[assignment]

        with self.assertRaises(StorageError):
            self.store.write("alice", record)

        self.assertEqual(os.listdir(os.path.join(self._tmp.name, "users")), [])

    def test_lock_does_not_block_other_users(self) -> None:
        with self.store.lock("alice"):
            acquired = threading.Event()

            def worker() -> None:
                with self.store.lock("bob"):
                    acquired.set()

            thread = threading.Thread(target=worker)
            thread.start()
            self.assertTrue(acquired.wait(timeout=2))
            thread.join()


class TestUserRecord(unittest.TestCase):
    def test_unknown_device_is_not_found(self) -> None:
        record = UserRecord(user=UserEntity(id="1", name="alice"))
        with self.assertRaises(NotFound):
            record.get_device("phone")

    def test_empty_device_name_rejected(self) -> None:
        record = UserRecord(user=UserEntity(id="1", name="alice"))
        with self.assertRaises(InvalidInput):
            record.put_device(DeviceRecord(name=""))

    def test_device_names_are_case_sensitive(self) -> None:
        record = UserRecord(user=UserEntity(id="1", name="alice"))
        record.put_device(DeviceRecord(name="Phone"))
        record.put_device(DeviceRecord(name="phone"))
        self.assertEqual(sorted(record.devices), ["Phone", "phone"])


if __name__ == "__main__":
    unittest.main()
