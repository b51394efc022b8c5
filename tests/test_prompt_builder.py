"""Tests for template rendering and prompt assembly."""

import pytest

from src.knowledge.store import PromptTemplates
from src.pipeline.prompt_builder import build_prompt, render_template


# ---------------------------------------------------------------------------
# render_template
# ---------------------------------------------------------------------------

class TestRenderTemplate:

    def test_flat_token(self):
        assert render_template("Hi {{name}}!", {"name": "Nova"}) == "Hi Nova!"

    def test_whitespace_inside_braces(self):
        assert render_template("Hi {{  name }}!", {"name": "Nova"}) == "Hi Nova!"

    def test_dotted_path(self):
        variables = {"guardrails": {"constraints": {"tone": "warm"}}}
        assert render_template("{{guardrails.constraints.tone}}", variables) == "warm"

    def test_list_joined_with_period_space(self):
        variables = {"g": {"rules": ["Be curious", "Be kind"]}}
        assert render_template("{{g.rules}}", variables) == "Be curious. Be kind"

    @pytest.mark.parametrize("template", [
        "{{missing}}",
        "{{guardrails.absent}}",
        "{{guardrails.constraints.tone.deeper}}",
        "{{name.first}}",
    ])
    def test_unresolved_token_becomes_empty(self, template):
        variables = {"name": "Nova", "guardrails": {"constraints": {"tone": "warm"}}}
        assert render_template(template, variables) == ""

    def test_none_value_becomes_empty(self):
        assert render_template("[{{x}}]", {"x": None}) == "[]"

    def test_no_literal_placeholder_left(self):
        out = render_template("{{a}} {{b.c}} {{d}}", {"a": "1"})
        assert "{{" not in out and "}}" not in out
        assert out == "1  "

    def test_scalars_stringified(self):
        assert render_template("{{n}} {{flag}}", {"n": 3, "flag": True}) == "3 true"

    def test_text_without_tokens_untouched(self):
        assert render_template("plain { text }", {}) == "plain { text }"


# ---------------------------------------------------------------------------
# build_prompt
# ---------------------------------------------------------------------------

TEMPLATES = PromptTemplates(
    system="Be safe.",
    character="You are {{character}}.",
    answer="{{context}}|{{question}}|{{character}}|{{refusal_text}}|{{guardrails.constraints.tone}}",
)


class TestBuildPrompt:

    def test_system_joins_base_and_character(self):
        bundle = build_prompt(TEMPLATES, question="hi", context="ctx", character="Nova")
        assert bundle.system == "Be safe.\n\nYou are Nova."

    def test_blank_system_segments_dropped(self):
        templates = PromptTemplates(system="   ", character="You are {{character}}.", answer="")
        bundle = build_prompt(templates, question="hi", context="ctx", character="Nova")
        assert bundle.system == "You are Nova."

    def test_user_prompt_variables(self):
        bundle = build_prompt(
            TEMPLATES,
            question="What is a star?",
            context="  facts  ",
            character="Nova",
            refusal_text="Nope.",
            guardrails={"constraints": {"tone": "warm"}},
        )
        assert bundle.user == "facts|What is a star?|Nova|Nope.|warm"

    def test_missing_guardrails_render_empty(self):
        bundle = build_prompt(TEMPLATES, question="q", context="c", character="Nova", refusal_text="r")
        assert bundle.user.endswith("|r|")

    @pytest.mark.parametrize("context", ["", "   ", "\n\t"])
    def test_should_refuse_on_blank_context(self, context):
        bundle = build_prompt(TEMPLATES, question="q", context=context)
        assert bundle.should_refuse is True

    def test_should_refuse_ignores_guardrails(self):
        bundle = build_prompt(TEMPLATES, question="q", context="", guardrails={"constraints": {"tone": "x"}})
        assert bundle.should_refuse is True

    def test_context_present_does_not_refuse(self):
        assert build_prompt(TEMPLATES, question="q", context="x").should_refuse is False

    def test_deterministic(self):
        kwargs = dict(question="q", context="c", character="Nova", refusal_text="r", guardrails={})
        assert build_prompt(TEMPLATES, **kwargs) == build_prompt(TEMPLATES, **kwargs)
