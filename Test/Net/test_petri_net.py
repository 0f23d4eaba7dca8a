import unittest

import networkx as nx

from petrikit.exceptions import (
    EntityNotFound,
    ErrorKind,
    MismatchedOwner,
    StructuralViolation,
    UnknownTransition,
)
from petrikit.Net import Arc, Place, PetriNet, Transition, TransitionRole


class TestPetriNetStructure(unittest.TestCase):
    def setUp(self) -> None:
        self.net = PetriNet("Review", admin_id="ADM1")
        self.p0 = self.net.add_place(Place(self.net.id, "start"))
        self.p1 = self.net.add_place(Place(self.net.id, "end"))
        self.t = self.net.add_transition(Transition(self.net.id, "approve"))

    def _wire(self) -> None:
        self.net.connect(self.p0.id, self.t.id)
        self.net.connect(self.t.id, self.p1.id)
        self.net.set_initial(self.p0)
        self.net.set_final(self.p1)

    def test_generated_ids_carry_kind_prefix(self) -> None:
        self.assertTrue(self.net.id.startswith("NP"))
        self.assertTrue(self.p0.id.startswith("P"))
        self.assertTrue(self.t.id.startswith("T"))
        arc = self.net.connect(self.p0.id, self.t.id)
        self.assertTrue(arc.id.startswith("A"))

    def test_same_kind_arc_rejected_before_construction(self) -> None:
        with self.assertRaises(StructuralViolation) as ctx:
            Arc(self.net.id, self.p0.id, self.p1.id)
        self.assertEqual(ctx.exception.kind, ErrorKind.STRUCTURAL_VIOLATION)
        self.assertIn("same type", str(ctx.exception))
        self.assertEqual(len(self.net.arcs), 0)

    def test_non_positive_weight_rejected(self) -> None:
        with self.assertRaises(StructuralViolation):
            Arc(self.net.id, self.p0.id, self.t.id, weight=0)
        arc = self.net.connect(self.p0.id, self.t.id)
        with self.assertRaises(StructuralViolation):
            self.net.set_arc_weight(arc.id, -2)
        self.net.set_arc_weight(arc.id, 3)
        self.assertEqual(self.net.get_arc(arc.id).weight, 3)

    def test_foreign_element_rejected(self) -> None:
        with self.assertRaises(MismatchedOwner):
            self.net.add_place(Place("NPother", "x"))
        with self.assertRaises(MismatchedOwner):
            self.net.add_arc(Arc("NPother", self.p0.id, self.t.id))

    def test_duplicate_ids_rejected(self) -> None:
        with self.assertRaises(StructuralViolation):
            self.net.add_place(Place(self.net.id, "again", id=self.p0.id))
        arc = self.net.connect(self.p0.id, self.t.id)
        with self.assertRaises(StructuralViolation):
            self.net.add_arc(Arc(self.net.id, self.p0.id, self.t.id, id=arc.id))

    def test_unknown_endpoint_rejected(self) -> None:
        with self.assertRaises(StructuralViolation):
            self.net.connect("Pmissing", self.t.id)

    def test_identical_and_inverse_arcs_rejected(self) -> None:
        self.net.connect(self.p0.id, self.t.id)
        with self.assertRaises(StructuralViolation):
            self.net.connect(self.p0.id, self.t.id)
        with self.assertRaises(StructuralViolation) as ctx:
            self.net.connect(self.t.id, self.p0.id)
        self.assertIn("inverse", str(ctx.exception))

    def test_arcs_into_initial_or_out_of_final_rejected(self) -> None:
        self._wire()
        t2 = self.net.add_transition(Transition(self.net.id, "loop"))
        with self.assertRaises(StructuralViolation):
            self.net.connect(t2.id, self.p0.id)
        with self.assertRaises(StructuralViolation):
            self.net.connect(self.p1.id, t2.id)

    def test_designation_requires_registered_place(self) -> None:
        with self.assertRaises(StructuralViolation):
            self.net.set_initial(Place(self.net.id, "ghost"))

    def test_designations_are_exclusive(self) -> None:
        self.net.set_initial(self.p0)
        self.net.set_final(self.p0.id)
        self.assertIsNone(self.net.initial_place_id)
        self.assertEqual(self.net.final_place_id, self.p0.id)

    def test_remove_place_cascades(self) -> None:
        self._wire()
        self.net.remove_place(self.p0.id)
        self.assertNotIn(self.p0.id, self.net.places)
        self.assertIsNone(self.net.initial_place_id)
        self.assertTrue(all(not a.touches(self.p0.id) for a in self.net.arcs.values()))
        self.assertEqual(len(self.net.arcs), 1)

    def test_remove_transition_cascades(self) -> None:
        self._wire()
        self.net.remove_transition(self.t.id)
        self.assertEqual(len(self.net.arcs), 0)
        self.assertEqual(self.net.initial_place_id, self.p0.id)

    def test_remove_unknown_elements(self) -> None:
        with self.assertRaises(EntityNotFound):
            self.net.remove_place("Pmissing")
        with self.assertRaises(EntityNotFound):
            self.net.remove_transition("Tmissing")
        self.net.remove_arc("Amissing")

    def test_get_transition_unknown(self) -> None:
        with self.assertRaises(UnknownTransition):
            self.net.get_transition("Tmissing")

    def test_toggle_transition_role(self) -> None:
        self.assertEqual(self.t.role, TransitionRole.USER)
        self.assertEqual(self.net.toggle_transition_role(self.t.id), TransitionRole.ADMIN)
        self.net.set_transition_role(self.t.id, TransitionRole.USER)
        self.assertEqual(self.t.role, TransitionRole.USER)

    def test_to_digraph_is_bipartite(self) -> None:
        self._wire()
        G = self.net.to_digraph()
        self.assertIsInstance(G, nx.DiGraph)
        self.assertEqual(G.number_of_nodes(), 3)
        self.assertEqual(G.number_of_edges(), 2)
        self.assertEqual(G.nodes[self.t.id]["kind"], "transition")
        places = {n for n, d in G.nodes(data=True) if d["bipartite"] == 0}
        self.assertTrue(nx.is_bipartite(G.to_undirected()))
        self.assertEqual(places, {self.p0.id, self.p1.id})


class TestPetriNetValidation(unittest.TestCase):
    def setUp(self) -> None:
        self.net = PetriNet("Chain", admin_id="ADM1")
        self.p0 = self.net.add_place(Place(self.net.id, "p0"))
        self.p1 = self.net.add_place(Place(self.net.id, "p1"))
        self.p2 = self.net.add_place(Place(self.net.id, "p2"))
        self.t0 = self.net.add_transition(Transition(self.net.id, "t0"))
        self.t1 = self.net.add_transition(Transition(self.net.id, "t1"))
        self.net.connect(self.p0.id, self.t0.id)
        self.net.connect(self.t0.id, self.p1.id)
        self.net.connect(self.p1.id, self.t1.id)
        self.net.connect(self.t1.id, self.p2.id)

    def test_valid_chain(self) -> None:
        self.net.set_initial(self.p0)
        self.net.set_final(self.p2)
        self.net.validate()
        self.assertTrue(self.net.is_valid())

    def test_missing_designation(self) -> None:
        self.net.set_final(self.p2)
        with self.assertRaises(StructuralViolation) as ctx:
            self.net.validate()
        self.assertIn("initialPlace must be defined", str(ctx.exception))
        self.assertFalse(self.net.is_valid())

    def test_designation_mismatch(self) -> None:
        self.net.set_initial(self.p1)
        self.net.set_final(self.p2)
        with self.assertRaises(StructuralViolation) as ctx:
            self.net.validate()
        self.assertIn("does not match", str(ctx.exception))

    def test_two_sinks(self) -> None:
        extra = self.net.add_place(Place(self.net.id, "side"))
        self.net.connect(self.t1.id, extra.id)
        self.net.set_initial(self.p0)
        self.net.set_final(self.p2)
        with self.assertRaises(StructuralViolation) as ctx:
            self.net.validate()
        self.assertIn("found: 2", str(ctx.exception))

    def test_default_marking_uses_design_tokens(self) -> None:
        self.p0.set_tokens(2)
        self.assertEqual(self.net.default_marking(), {self.p0.id: 2})
        with self.assertRaises(ValueError):
            self.p0.set_tokens(-1)


if __name__ == "__main__":
    unittest.main()
