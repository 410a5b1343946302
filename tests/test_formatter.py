"""Tests for model output cleanup."""

from rtlgen.generation.formatter import extract_code_block


class TestExtractCodeBlock:
    def test_fenced_block(self):
        raw = "Here is your test:\n```tsx\nimport x from 'y';\ntest('a', () => {});\n```\nEnjoy!"
        assert extract_code_block(raw) == "import x from 'y';\ntest('a', () => {});"

    def test_unlabelled_fence(self):
        assert extract_code_block("```\nit('works', () => {});\n```") == "it('works', () => {});"

    def test_prose_before_first_import(self):
        raw = "Sure! The test follows.\nimport { render } from '@testing-library/react';\ntest('x', () => {});"
        assert extract_code_block(raw).startswith("import { render }")

    def test_plain_text_is_trimmed(self):
        assert extract_code_block("  describe('a', () => {});  \n") == "describe('a', () => {});"

    def test_empty_fence_falls_back(self):
        assert extract_code_block("```\n```") == "```\n```"
