"""QuestionTree tests — document order, structure helpers and load-time validation."""

import pytest
from pydantic import ValidationError

from survey_flow.exceptions import StructuralError
from survey_flow.models.question import Question, QuestionNode
from survey_flow.tree import QuestionTree


CAR_ORDER = ["q_car", "q_car_model", "q_car_fuel", "q_charging", "q_car_plans", "q_commute"]


# =====================================================================
# Document order and structure
# =====================================================================


class TestDocumentOrder:

    def test_depth_first_order(self, car_tree):
        assert car_tree.order == CAR_ORDER
        assert [q.id for q in car_tree] == CAR_ORDER

    def test_depth(self, car_tree):
        assert car_tree.depth("q_car") == 0
        assert car_tree.depth("q_car_fuel") == 1
        assert car_tree.depth("q_charging") == 2

    def test_flat_records_match_nested(self, car_tree):
        """Parent back-references alone produce the same order."""
        flat = [
            {"id": "q_car", "text": "Own a car?", "type": "yes-no"},
            {"id": "q_commute", "text": "Commute km?", "type": "number"},
            {"id": "q_car_model", "text": "Model?", "type": "text",
             "parent_question_id": "q_car", "trigger_condition_value": "Yes"},
            {"id": "q_car_fuel", "text": "Fuel?", "type": "multiple-choice",
             "options": ["Petrol", "Electric"],
             "parent_question_id": "q_car", "trigger_condition_value": "Yes"},
            {"id": "q_charging", "text": "Charging?", "type": "multiple-choice-multi",
             "options": ["Home", "Work"],
             "parent_question_id": "q_car_fuel", "trigger_condition_value": "Electric"},
            {"id": "q_car_plans", "text": "Plans?", "type": "yes-no",
             "parent_question_id": "q_car", "trigger_condition_value": "No"},
        ]
        tree = QuestionTree.from_dicts(flat)
        assert tree.order == CAR_ORDER

    def test_children_keep_input_order(self, car_tree):
        assert [q.id for q in car_tree.children("q_car")] == [
            "q_car_model", "q_car_fuel", "q_car_plans",
        ]
        assert car_tree.children("q_commute") == []

    def test_descendants_and_following(self, car_tree):
        assert [q.id for q in car_tree.descendants("q_car")] == CAR_ORDER[1:5]
        assert [q.id for q in car_tree.following("q_car")] == ["q_commute"]
        assert [q.id for q in car_tree.following("q_charging")] == ["q_car_plans", "q_commute"]
        assert car_tree.following("q_commute") == []

    def test_preceding(self, car_tree):
        assert [q.id for q in car_tree.preceding("q_car_fuel")] == ["q_car", "q_car_model"]

    def test_ancestors(self, car_tree):
        assert [q.id for q in car_tree.ancestors("q_charging")] == ["q_car_fuel", "q_car"]
        assert car_tree.ancestors("q_car") == []

    def test_roots(self, car_tree):
        assert [q.id for q in car_tree.roots()] == ["q_car", "q_commute"]

    def test_get_unknown_raises_key_error(self, car_tree):
        with pytest.raises(KeyError, match="not found"):
            car_tree.get("q_missing")

    def test_to_nested_rebuilds_same_tree(self, car_tree):
        nested = car_tree.to_nested()
        assert [n["id"] for n in nested] == ["q_car", "q_commute"]
        assert [c["id"] for c in nested[0]["sub_questions"]] == [
            "q_car_model", "q_car_fuel", "q_car_plans",
        ]
        rebuilt = QuestionTree.from_dicts(nested)
        assert rebuilt.order == car_tree.order

    def test_empty_tree(self):
        tree = QuestionTree([])
        assert len(tree) == 0
        assert tree.order == []


# =====================================================================
# Structural errors
# =====================================================================


class TestStructuralErrors:

    def test_duplicate_id(self):
        with pytest.raises(StructuralError, match="duplicate"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "A?", "type": "text"},
                {"id": "a", "text": "Again?", "type": "text"},
            ])

    def test_missing_parent(self):
        with pytest.raises(StructuralError, match="missing parent"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "A?", "type": "text", "parent_question_id": "ghost"},
            ])

    def test_own_parent(self):
        with pytest.raises(StructuralError, match="own parent"):
            QuestionTree([Question(id="a", text="A?", type="text", parent_question_id="a")])

    def test_parent_cycle(self):
        with pytest.raises(StructuralError, match="parent cycle"):
            QuestionTree([
                Question(id="root", text="Root?", type="text"),
                Question(id="a", text="A?", type="text", parent_question_id="b"),
                Question(id="b", text="B?", type="text", parent_question_id="a"),
            ])

    def test_nested_child_declaring_other_parent(self):
        with pytest.raises(StructuralError, match="declares parent"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "A?", "type": "yes-no", "sub_questions": [
                    {"id": "b", "text": "B?", "type": "text", "parent_question_id": "c"},
                ]},
                {"id": "c", "text": "C?", "type": "text"},
            ])

    def test_missing_iterative_source(self):
        with pytest.raises(StructuralError, match="missing iterative source"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "Name?", "type": "text",
                 "is_iterative": True, "iterative_source_question_id": "ghost"},
            ])

    def test_own_iterative_source(self):
        with pytest.raises(StructuralError, match="own iterative source"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "Name?", "type": "text",
                 "is_iterative": True, "iterative_source_question_id": "a"},
            ])

    def test_dependency_cycle_through_source(self):
        """A question repeating over its own child's answer can never become visible."""
        with pytest.raises(StructuralError, match="depends on itself"):
            QuestionTree.from_dicts([
                {"id": "a", "text": "Name?", "type": "text",
                 "is_iterative": True, "iterative_source_question_id": "b",
                 "sub_questions": [
                     {"id": "b", "text": "How many?", "type": "number"},
                 ]},
            ])


# =====================================================================
# Iterative source resolution
# =====================================================================


class TestIterativeSources:

    def test_text_source_resolves_to_id(self):
        tree = QuestionTree.from_dicts([
            {"id": "n", "text": "How many pets do you have?", "type": "number"},
            {"id": "name", "text": "Pet name?", "type": "text", "is_iterative": True,
             "iterative_source_question_text": "  how many PETS do you have? "},
        ])
        q = tree.get("name")
        assert q.iterative_source_question_id == "n"
        assert q.iterative_source_question_text is None

    def test_ambiguous_text_source(self):
        with pytest.raises(StructuralError, match="matches 2 questions"):
            QuestionTree.from_dicts([
                {"id": "n1", "text": "How many?", "type": "number"},
                {"id": "n2", "text": "How many?", "type": "number"},
                {"id": "x", "text": "Name?", "type": "text", "is_iterative": True,
                 "iterative_source_question_text": "How many?"},
            ])

    def test_unmatched_text_source(self):
        with pytest.raises(StructuralError, match="matches 0 questions"):
            QuestionTree.from_dicts([
                {"id": "x", "text": "Name?", "type": "text", "is_iterative": True,
                 "iterative_source_question_text": "How many?"},
            ])

    def test_library_source_is_id_based(self, pet_tree):
        assert pet_tree.get("q_pet_name").iterative_source_question_id == "q_pets"


# =====================================================================
# Question model validation
# =====================================================================


class TestQuestionModel:

    def test_choice_without_options_rejected(self):
        with pytest.raises(ValidationError):
            Question(id="a", text="Pick", type="multiple-choice")

    def test_options_on_text_rejected(self):
        with pytest.raises(ValidationError):
            Question(id="a", text="Say", type="text", options=["x"])

    def test_trigger_requires_parent(self):
        with pytest.raises(ValidationError):
            Question(id="a", text="A?", type="text", trigger_condition_value="Yes")

    def test_iterative_requires_source(self):
        with pytest.raises(ValidationError):
            Question(id="a", text="A?", type="text", is_iterative=True)

    def test_bare_string_options_get_ids(self):
        q = Question(id="a", text="Fuel?", type="multiple-choice", options=["Petrol", "Diesel"])
        assert [(o.id, o.text) for o in q.options] == [("1", "Petrol"), ("2", "Diesel")]

    def test_yaml_scalars_become_strings(self):
        node = QuestionNode(id=1, text="Own a car?", type="yes-no", sub_questions=[
            {"id": 2, "text": "Model?", "type": "text", "trigger_condition_value": True},
        ])
        child = node.sub_questions[0]
        assert child.id == "2"
        assert child.parent_question_id == "1"
        assert child.trigger_condition_value == "Yes"

    def test_expected_answers_from_comma_string(self, car_tree):
        assert car_tree.get("q_car_model").expected_answers == [
            "Toyota Corolla", "Honda Civic", "Tesla Model 3",
        ]

    def test_integral_float_trigger_drops_fraction(self):
        q = Question(id="b", text="Why three?", type="text",
                     parent_question_id="a", trigger_condition_value=3.0)
        assert q.trigger_condition_value == "3"
        fractional = Question(id="c", text="Why?", type="text",
                              parent_question_id="a", trigger_condition_value=2.5)
        assert fractional.trigger_condition_value == "2.5"
