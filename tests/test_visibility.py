"""Conditional visibility and enablement driven by initiator fields."""

import asyncio

import pytest
from fastcore.xml import Div, Input, Option, Select, Span

from viewbind import ImpactState


def gender_select(selected: str = ""):
    return Select(
        Option("-", value="", selected=selected == ""),
        Option("Male", value="1", selected=selected == "1"),
        Option("Female", value="2", selected=selected == "2"),
        name="gender", id="gender",
    )


class TestEvaluation:

    def test_conditions_combine_with_and(self, make_engine):
        engine = make_engine(
            gender_select(),
            Input(type="text", name="country", id="country"),
            Div("US/CA men", id="target", data_display="gender:1;country:[US,CA]"),
        )
        tree = engine.tree
        target = tree.by_id("target")
        assert target.hidden

        tree.by_id("gender").choose("1")
        assert target.hidden
        tree.by_id("country").type_text("CA")
        assert not target.hidden
        tree.by_id("country").type_text("MX")
        assert target.hidden
        tree.by_id("country").type_text("US")
        tree.by_id("gender").choose("2")
        assert target.hidden

    def test_hide_is_inverse_of_display(self, make_engine):
        engine = make_engine(
            Input(type="text", name="status", id="status"),
            Div(id="shown_when_archived", data_display="status:archived"),
            Div(id="hidden_when_archived", data_hide="status:archived"),
        )
        tree = engine.tree
        for value in ("archived", "open", ""):
            tree.by_id("status").type_text(value)
            assert tree.by_id("shown_when_archived").hidden != tree.by_id("hidden_when_archived").hidden

    def test_only_first_control_attribute_applies(self, make_engine):
        engine = make_engine(
            Input(type="text", name="a", id="a", value="1"),
            Input(type="text", name="b", id="b", value="x"),
            Div(id="target", data_display="a:1", data_hide="b:x"),
        )
        assert not engine.tree.by_id("target").hidden
        assert engine.graph.initiators() == ["a"]

    def test_radio_initiator_uses_checked_member(self, make_engine):
        engine = make_engine(
            Input(type="radio", name="plan", value="free", id="free", checked=True),
            Input(type="radio", name="plan", value="pro", id="pro"),
            Div(id="billing", data_display="plan:pro"),
        )
        tree = engine.tree
        assert tree.by_id("billing").hidden
        tree.by_id("pro").click()
        assert not tree.by_id("billing").hidden
        tree.by_id("free").click()
        assert tree.by_id("billing").hidden

    def test_blank_value_matches_nothing_checked(self, make_engine):
        engine = make_engine(
            Input(type="checkbox", name="agree", value="yes", id="agree"),
            Span("Please accept the terms", id="hint", data_display="agree:"),
        )
        tree = engine.tree
        assert not tree.by_id("hint").hidden
        tree.by_id("agree").click()
        assert tree.by_id("hint").hidden

    def test_missing_initiator_is_left_alone(self, make_engine):
        engine = make_engine(Div(id="target", data_display="nowhere:1"))
        impacted = engine.graph.get("target")
        assert impacted.state is ImpactState.PENDING
        assert not engine.tree.by_id("target").hidden

    def test_evaluation_visits_registration_order(self, make_engine):
        engine = make_engine(
            Input(type="text", name="x", id="x"),
            Div(id="first", data_display="x:1"),
            Div(id="second", data_hide="x:1"),
        )
        assert [i.element_id for i in engine.graph.impacted_by("x")] == ["first", "second"]


class TestEnablement:

    def test_enable_effect_only_toggles_disabled(self, make_engine):
        engine = make_engine(
            Select(Option("A", value="a"), Option("Other", value="other"), name="reason_kind", id="kind"),
            Input(type="text", id="reason", data_enable="reason_kind:other"),
        )
        tree = engine.tree
        reason = tree.by_id("reason")
        assert reason.disabled
        assert not reason.hidden
        tree.by_id("kind").choose("other")
        assert not reason.disabled

    def test_disable_effect(self, make_engine):
        engine = make_engine(
            Input(type="checkbox", name="locked", value="yes", id="locked"),
            Input(type="text", id="note", data_disable="locked:yes"),
        )
        tree = engine.tree
        assert not tree.by_id("note").disabled
        tree.by_id("locked").click()
        assert tree.by_id("note").disabled

    def test_hiding_disables_descendants_but_respects_maintain_disabled(self, make_engine):
        engine = make_engine(
            Input(type="checkbox", name="toggle", value="yes", id="toggle"),
            Div(
                Input(type="text", name="plain", id="plain"),
                Input(type="text", name="locked", id="locked", disabled=True),
                id="section", data_display="toggle:yes",
            ),
        )
        tree = engine.tree
        plain, locked = tree.by_id("plain"), tree.by_id("locked")
        assert locked.has_class("maintain-disabled")
        assert plain.disabled and locked.disabled

        tree.by_id("toggle").click()
        assert not tree.by_id("section").hidden
        assert not plain.disabled
        assert locked.disabled

    @staticmethod
    def nested_sections():
        return (
            Input(type="text", name="a", id="a", value="0"),
            Input(type="text", name="b", id="b", value="0"),
            Div(
                Div(
                    Input(type="text", name="inner", id="inner", value="secret"),
                    id="inner_section", data_display="b:1",
                ),
                id="outer_section", data_display="a:1",
            ),
        )

    def test_showing_outer_section_keeps_hidden_inner_section_disabled(self, make_engine):
        engine = make_engine(*self.nested_sections())
        tree = engine.tree
        tree.by_id("a").type_text("1")
        assert not tree.by_id("outer_section").hidden
        assert tree.by_id("inner_section").hidden
        assert tree.by_id("inner").disabled
        assert "inner" not in tree.form_data()

        tree.by_id("b").type_text("1")
        assert not tree.by_id("inner").disabled
        assert tree.form_data()["inner"] == ["secret"]

    def test_showing_inner_section_inside_hidden_outer_keeps_it_disabled(self, make_engine):
        engine = make_engine(*self.nested_sections())
        tree = engine.tree
        tree.by_id("b").type_text("1")
        assert tree.by_id("outer_section").hidden
        assert tree.by_id("inner").disabled
        assert "inner" not in tree.form_data()

        tree.by_id("a").type_text("1")
        assert not tree.by_id("inner").disabled
        assert tree.form_data()["inner"] == ["secret"]


class TestListeners:

    def test_listener_installed_once_per_initiator(self, make_engine):
        engine = make_engine(
            Input(type="text", name="status", id="status"),
            Div(id="a", data_display="status:1"),
            Div(id="b", data_display="status:2"),
            Div(id="c", data_hide="status:[1,2]"),
        )
        assert engine.tree.by_id("status").listener_count("change") == 1
        assert engine.graph.listener_installed(engine.tree.by_id("status"))

    def test_register_is_idempotent(self, make_engine):
        engine = make_engine(
            Input(type="text", name="status", id="status"),
            Div(id="a", data_display="status:1"),
        )
        element = engine.tree.by_id("a")
        assert engine.graph.register(element) is engine.graph.get("a")
        assert len(engine.graph.impacted_by("status")) == 1

    def test_initiators_sharing_an_id_each_get_a_listener(self, make_engine):
        engine = make_engine(
            Input(type="text", name="status", id="status"),
            Input(type="text", name="status", id="status"),
            Div(id="target", data_display="status:1"),
        )
        first, second = engine.tree.by_name("status")
        assert first.listener_count("change") == 1
        assert second.listener_count("change") == 1

        second.type_text("1")
        assert not engine.tree.by_id("target").hidden


class TestHideCallbacks:

    def test_startup_pass_never_fires_callbacks(self, make_engine):
        calls = []
        engine = make_engine(
            gender_select("1"),
            Div(id="men_only", data_display="gender:2", data_display_hide_callback="onHidden"),
            callbacks={"onHidden": calls.append},
        )
        assert engine.tree.by_id("men_only").hidden
        assert calls == []
        assert not engine.graph.is_starting

    def test_callback_fires_on_transition_into_hidden(self, make_engine):
        calls = []
        engine = make_engine(
            gender_select("1"),
            Div(id="target", data_display="gender:1", data_display_hide_callback="onHidden"),
            callbacks={"onHidden": calls.append},
        )
        gender = engine.tree.by_id("gender")
        gender.choose("2")
        gender.choose("")
        assert calls == ["target"]
        gender.choose("1")
        gender.choose("2")
        assert calls == ["target", "target"]

    def test_failing_callback_does_not_stop_evaluation(self, make_engine):
        seen = []

        def broken(element_id):
            raise RuntimeError("host bug")

        engine = make_engine(
            Input(type="text", name="x", id="x", value="1"),
            Div(id="first", data_display="x:1", data_display_hide_callback="broken"),
            Div(id="second", data_display="x:1", data_display_hide_callback="seen"),
            callbacks={"broken": broken, "seen": seen.append},
        )
        engine.tree.by_id("x").type_text("2")
        assert engine.tree.by_id("first").hidden
        assert seen == ["second"]

    def test_unknown_callback_is_logged(self, make_engine, caplog):
        engine = make_engine(
            Input(type="text", name="x", id="x", value="1"),
            Div(id="target", data_display="x:1", data_display_hide_callback="missing"),
        )
        engine.tree.by_id("x").type_text("2")
        assert "missing" in caplog.text

    @pytest.mark.asyncio
    async def test_startup_flag_clears_on_next_tick(self, make_engine):
        calls = []
        engine = make_engine(
            gender_select("1"),
            Div(id="target", data_display="gender:1", data_display_hide_callback="onHidden"),
            callbacks={"onHidden": calls.append},
        )
        assert engine.graph.is_starting
        engine.tree.by_id("gender").choose("2")
        assert calls == []

        await asyncio.sleep(0)
        assert not engine.graph.is_starting
        engine.tree.by_id("gender").choose("1")
        engine.tree.by_id("gender").choose("2")
        assert calls == ["target"]
