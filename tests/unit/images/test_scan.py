"""Tests for notebridge/images/scan.py.

Covers:
- scan across the standard, wiki, <img> and <Image> dialects
- de-duplication and remote detection
- query string / fragment stripping
- normalize_embeds rewriting
- property-based checks on text without references
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from notebridge.images.scan import iter_references, normalize_embeds, scan
from notebridge.models import ImageReference


def raw_paths(text: str) -> set[str]:
    return {ref.raw_path for ref in scan(text)}


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------

class TestScanDialects:
    def test_standard_markdown(self):
        assert raw_paths("Intro ![alt](img.png) outro") == {"img.png"}

    def test_standard_with_empty_alt(self):
        assert raw_paths("![](pics/a.jpg)") == {"pics/a.jpg"}

    def test_standard_with_title(self):
        assert raw_paths('![a](img.png "A title")') == {"img.png"}

    def test_standard_angle_brackets(self):
        assert raw_paths("![a](<my image.png>)") == {"my image.png"}

    def test_standard_alt_with_brackets(self):
        assert raw_paths("![a [b]](x.png)") == {"x.png"}

    def test_standard_alt_with_stray_bracket(self):
        assert raw_paths("![a [b](x.png)") == {"x.png"}

    def test_wiki_embed_is_not_read_as_standard(self):
        assert raw_paths("![[w.png]](x.png)") == {"w.png"}

    def test_wiki_embed(self):
        assert raw_paths("![[diagram.png]]") == {"diagram.png"}

    def test_wiki_embed_with_alt(self):
        assert raw_paths("![[folder/diagram.png|A diagram]]") == {"folder/diagram.png"}

    def test_html_img_double_quotes(self):
        assert raw_paths('<img src="photo.webp" alt="x">') == {"photo.webp"}

    def test_html_img_single_quotes_any_position(self):
        assert raw_paths("<img alt='x' width='20' src='photo.gif' />") == {"photo.gif"}

    def test_html_img_case_insensitive(self):
        assert raw_paths('<IMG SRC="upper.png">') == {"upper.png"}

    def test_html_img_ignores_data_src(self):
        assert raw_paths('<img data-src="lazy.png" src="real.png">') == {"real.png"}

    def test_component_string_attribute(self):
        assert raw_paths('<Image width={300} src="hero.jpg" />') == {"hero.jpg"}

    def test_component_expression_literal(self):
        assert raw_paths('<Image src={"hero.jpg"} />') == {"hero.jpg"}

    def test_component_expression_bare_filename(self):
        assert raw_paths("<Image src={hero.png} />") == {"hero.png"}

    def test_component_expression_variable_is_ignored(self):
        assert scan("<Image src={heroImage} />") == set()

    def test_mixed_dialects(self):
        text = (
            "![a](one.png)\n"
            "![[two.png]]\n"
            '<img src="three.png">\n'
            '<Image src="four.png" />\n'
        )
        assert raw_paths(text) == {"one.png", "two.png", "three.png", "four.png"}


class TestScanNormalization:
    def test_same_path_in_two_dialects_deduplicates(self):
        refs = scan("![a](img.png) ![[img.png]]")
        assert refs == {ImageReference("img.png", False)}

    def test_query_string_stripped(self):
        assert raw_paths("![a](img.png?width=200)") == {"img.png"}

    def test_fragment_stripped(self):
        assert raw_paths("![[img.png#right]]") == {"img.png"}

    def test_whitespace_trimmed(self):
        assert raw_paths("![a](  spaced.png  )") == {"spaced.png"}

    def test_empty_target_dropped(self):
        assert scan("![a]() ![[]]") == set()

    def test_remote_reference(self):
        refs = scan("![x](http://host/a.png)")
        assert refs == {ImageReference("http://host/a.png", True)}

    def test_https_is_remote(self):
        (ref,) = scan('<img src="https://cdn.test/a.png">')
        assert ref.is_remote is True

    def test_local_is_not_remote(self):
        (ref,) = scan("![x](/assets/a.png)")
        assert ref.is_remote is False

    def test_non_image_link_is_not_scanned(self):
        assert scan("[a link](page.md)") == set()


class TestIterReferences:
    def test_order_follows_dialect_then_position(self):
        text = '<img src="c.png"> ![[b.png]] ![a](a.png) ![z](z.png)'
        assert [r.raw_path for r in iter_references(text)] == [
            "a.png", "z.png", "b.png", "c.png",
        ]

    def test_duplicates_yielded_once(self):
        text = "![a](x.png) ![b](x.png) ![[x.png]]"
        assert [r.raw_path for r in iter_references(text)] == ["x.png"]


# ---------------------------------------------------------------------------
# normalize_embeds
# ---------------------------------------------------------------------------

class TestNormalizeEmbeds:
    def test_alt_text_and_spaces(self):
        assert normalize_embeds("![[a b.png|My Alt]]") == "![My Alt](/a-b.png)"

    def test_default_alt_is_last_component(self):
        assert normalize_embeds("![[img/pic one.png]]") == "![pic-one.png](/img/pic-one.png)"

    def test_only_first_alt_segment_kept(self):
        assert normalize_embeds("![[a.png|alt|100]]") == "![alt](/a.png)"

    def test_leading_slash_not_doubled(self):
        assert normalize_embeds("![[/abs.png]]") == "![abs.png](/abs.png)"

    def test_surrounding_text_preserved(self):
        text = "before ![[x.png]] after ![a](y.png)"
        assert normalize_embeds(text) == "before ![x.png](/x.png) after ![a](y.png)"

    def test_empty_embed_unchanged(self):
        assert normalize_embeds("![[]]") == "![[]]"

    def test_normalized_reference_scans_to_rooted_path(self):
        assert raw_paths(normalize_embeds("![[b.png]]")) == {"/b.png"}


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

# Text that cannot contain any reference: no "!" and no "<".
_plain_text = st.text(
    alphabet=st.characters(blacklist_characters="!<", blacklist_categories=("Cs",)),
    max_size=300,
)


@given(_plain_text)
def test_text_without_references_scans_empty(text):
    assert scan(text) == set()


@given(_plain_text)
def test_text_without_embeds_normalizes_unchanged(text):
    assert normalize_embeds(text) == text


@given(st.text(max_size=300))
def test_scan_never_raises(text):
    scan(text)


@given(st.text(max_size=300))
def test_scan_matches_iter_references(text):
    assert scan(text) == set(iter_references(text))


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain prose only",
        "# Heading\n\n- list\n- items\n",
        "```python\nprint('hi')\n```",
    ],
)
def test_examples_without_references(text):
    assert scan(text) == set()
    assert normalize_embeds(text) == text
