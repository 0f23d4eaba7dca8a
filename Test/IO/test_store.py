import json
import os
import tempfile
import unittest

from petrikit.config import ENV_DATA_DIR, Settings
from petrikit.IO.serialization import net_to_dict
from petrikit.IO.store import (
    JsonComputationStore,
    NetFileStore,
    UserFileStore,
    atomic_write,
)
from petrikit.Net import Place, PetriNet, Transition, TransitionRole
from petrikit.Process import Computation, ComputationStatus, ComputationStep, User, UserRole
from petrikit.Process.context import SystemContext
from petrikit.Process.service import ProcessService


def build_net(admin_id: str) -> PetriNet:
    net = PetriNet("Ticket", admin_id=admin_id)
    p0 = net.add_place(Place(net.id, "open"))
    p1 = net.add_place(Place(net.id, "closed", tokens=1))
    t = net.add_transition(Transition(net.id, "close", role=TransitionRole.ADMIN))
    net.connect(p0.id, t.id, weight=2)
    net.connect(t.id, p1.id)
    net.set_initial(p0)
    net.set_final(p1)
    return net


class TestAtomicWrite(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "nested", "out.txt")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_creates_parents_and_leaves_no_temp_files(self) -> None:
        atomic_write(self.path, lambda fh: fh.write("hello"))
        with open(self.path, encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "hello")
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["out.txt"])

    def test_failed_write_keeps_previous_file(self) -> None:
        atomic_write(self.path, lambda fh: fh.write("v1"))

        def broken(fh):
            fh.write("partial")
            raise OSError("boom")

        with self.assertRaises(OSError):
            atomic_write(self.path, broken)
        with open(self.path, encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "v1")
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["out.txt"])


class TestComputationStore(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "computations.json")
        self.store = JsonComputationStore(self.path)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_missing_file_is_empty(self) -> None:
        with self.assertLogs("petrikit.IO.store", level="INFO"):
            self.assertEqual(self.store.load_all(), {})

    def test_corrupt_file_is_logged_and_empty(self) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            fh.write("{not json")
        with self.assertLogs("petrikit.IO.store", level="ERROR"):
            self.assertEqual(self.store.load_all(), {})

    def test_wrong_top_level_shape_is_logged_and_empty(self) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump([{"id": "CO1"}], fh)
        with self.assertLogs("petrikit.IO.store", level="ERROR") as logs:
            self.assertEqual(self.store.load_all(), {})
        self.assertIn("found list", logs.output[0])

    def test_malformed_entry_skipped(self) -> None:
        comp = Computation("NP1", "USR1")
        self.store.save_all({comp.id: comp})
        with open(self.path, encoding="utf-8") as fh:
            raw = json.load(fh)
        raw["CObroken"] = ["not", "an", "object"]
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(raw, fh)
        with self.assertLogs("petrikit.IO.store", level="ERROR"):
            loaded = self.store.load_all()
        self.assertEqual(list(loaded), [comp.id])

    def test_round_trip(self) -> None:
        comp = Computation("NP1", "USR1")
        comp.add_step(ComputationStep(comp.id, None, {"P1": 1}))
        comp.add_step(ComputationStep(comp.id, "T1", {"P2": 1}))
        comp.complete()
        self.store.save_all({comp.id: comp})

        with open(self.path, encoding="utf-8") as fh:
            raw = json.load(fh)
        self.assertEqual(raw[comp.id]["petriNetId"], "NP1")
        self.assertEqual(raw[comp.id]["steps"][1]["markingData"]["tokensPerPlace"], {"P2": 1})

        loaded = self.store.load_all()[comp.id]
        self.assertEqual(loaded.status, ComputationStatus.COMPLETED)
        self.assertEqual(loaded.ended_at, comp.ended_at)
        self.assertEqual([s.id for s in loaded.steps], [s.id for s in comp.steps])
        self.assertEqual(loaded.current_marking, {"P2": 1})
        self.assertTrue(loaded.initial_step.is_initial)


class TestNetAndUserStores(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.admin = User("owner@example.com", UserRole.ADMIN)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_net_round_trip(self) -> None:
        net = build_net(self.admin.id)
        store = NetFileStore(os.path.join(self.tmp.name, "petriNets.json"))
        store.save_all([net])
        (loaded,) = store.load_all()
        self.assertEqual(net_to_dict(loaded), net_to_dict(net))
        loaded.validate()
        self.assertEqual(loaded.transitions[next(iter(net.transitions))].role, TransitionRole.ADMIN)

    def test_net_file_with_wrong_shape(self) -> None:
        path = os.path.join(self.tmp.name, "petriNets.json")
        net = build_net(self.admin.id)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump({net.id: net_to_dict(net)}, fh)
        with self.assertLogs("petrikit.IO.store", level="ERROR") as logs:
            self.assertEqual(NetFileStore(path).load_all(), [])
        self.assertIn("found dict", logs.output[0])

    def test_non_object_net_entry_skipped(self) -> None:
        path = os.path.join(self.tmp.name, "petriNets.json")
        net = build_net(self.admin.id)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(["garbage", net_to_dict(net)], fh)
        with self.assertLogs("petrikit.IO.store", level="ERROR"):
            loaded = NetFileStore(path).load_all()
        self.assertEqual([n.id for n in loaded], [net.id])

    def test_context_starts_with_misshapen_files(self) -> None:
        settings = Settings(data_dir=self.tmp.name, default_admins=("boss@example.com",))
        with open(settings.nets_path, "w", encoding="utf-8") as fh:
            json.dump({"NP1": {}}, fh)
        with open(settings.computations_path, "w", encoding="utf-8") as fh:
            json.dump([{"id": "CO1"}], fh)
        with self.assertLogs("petrikit.IO.store", level="ERROR"):
            ctx = SystemContext.from_settings(settings)
            service = ProcessService(ctx)
        self.assertEqual(len(ctx.nets), 0)
        self.assertEqual(len(service), 0)

    def test_user_table_seeded_when_missing(self) -> None:
        path = os.path.join(self.tmp.name, "userData.csv")
        store = UserFileStore(path, default_admins=("a@example.com", "b@example.com"))
        with self.assertLogs("petrikit.IO.store", level="WARNING"):
            seeded = store.load_all()
        self.assertEqual([u.email for u in seeded], ["a@example.com", "b@example.com"])
        self.assertTrue(all(u.is_admin for u in seeded))
        self.assertTrue(os.path.exists(path))
        self.assertEqual(store.load_all(), seeded)

    def test_user_round_trip(self) -> None:
        path = os.path.join(self.tmp.name, "userData.csv")
        store = UserFileStore(path)
        users = [self.admin, User("plain@example.com")]
        store.save_all(users)
        self.assertEqual(store.load_all(), users)
        with open(path, encoding="utf-8") as fh:
            self.assertEqual(fh.readline().strip(), "id,email,role")

    def test_user_table_missing_columns(self) -> None:
        path = os.path.join(self.tmp.name, "userData.csv")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("email\nx@example.com\n")
        with self.assertRaises(ValueError):
            UserFileStore(path).load_all()


class TestSystemContext(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(data_dir=self.tmp.name, default_admins=("boss@example.com",))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_settings_from_env(self) -> None:
        self.assertEqual(Settings.from_env({ENV_DATA_DIR: "/srv/petri"}).data_dir, "/srv/petri")
        self.assertEqual(Settings.from_env({}).data_dir, "data")
        self.assertTrue(self.settings.users_path.endswith("userData.csv"))

    def test_from_settings_end_to_end(self) -> None:
        ctx = SystemContext.from_settings(self.settings)
        boss = ctx.users.get_by_email("boss@example.com")
        self.assertIsNotNone(boss)
        user = ctx.users.register("worker@example.com")
        ctx.save_users()

        valid = build_net(boss.id)
        broken = PetriNet("Draft", admin_id=boss.id)
        broken.add_place(Place(broken.id, "lonely"))
        ctx.nets.register(valid)
        ctx.save_nets()
        self.assertEqual([n.id for n in NetFileStore(self.settings.nets_path).load_all()], [valid.id])
        NetFileStore(self.settings.nets_path).save_all([valid, broken])

        with self.assertLogs("petrikit.Process.context", level="WARNING"):
            ctx = SystemContext.from_settings(self.settings)
        self.assertEqual([n.id for n in ctx.nets.all()], [valid.id])
        self.assertIsNotNone(ctx.users.get(user.id))

        service = ProcessService(ctx)
        comp = service.start_new_computation(user.id, valid.id)
        self.assertTrue(os.path.exists(self.settings.computations_path))

        restarted = ProcessService(SystemContext.from_settings(self.settings))
        self.assertEqual(restarted.get_computation_by_id(comp.id).user_id, user.id)


if __name__ == "__main__":
    unittest.main()
