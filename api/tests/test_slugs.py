from content_admin.core.slugs import decode_fixpoint, decode_slug, needs_decoding


def test_decode_fixpoint_decodes_percent_encoded_korean() -> None:
    result = decode_fixpoint("%ED%98%B8%ED%85%94")

    assert result.final_value == "호텔"
    assert result.changed is True
    assert result.iterations == 1
    assert result.truncated is False


def test_decode_fixpoint_unwraps_double_encoding() -> None:
    result = decode_fixpoint("%25ED%2598%25B8%25ED%2585%2594")

    assert result.final_value == "호텔"
    assert result.iterations == 2


def test_decode_fixpoint_leaves_plain_text_unchanged() -> None:
    result = decode_fixpoint("already-korean-text")

    assert result.final_value == "already-korean-text"
    assert result.changed is False
    assert result.iterations == 0
    assert result.truncated is False


def test_decode_fixpoint_keeps_plus_signs() -> None:
    assert decode_slug("a+b%20c") == "a+b c"


def test_decode_fixpoint_absorbs_malformed_escape() -> None:
    result = decode_fixpoint("%E0%A4%A")

    assert result.final_value == "%E0%A4%A"
    assert result.changed is False


def test_decode_fixpoint_absorbs_invalid_utf8() -> None:
    result = decode_fixpoint("hotel-%FF")

    assert result.final_value == "hotel-%FF"
    assert result.changed is False


def test_decode_fixpoint_returns_last_good_round_when_later_round_fails() -> None:
    result = decode_fixpoint("%25zz")

    assert result.final_value == "%zz"
    assert result.changed is True
    assert result.iterations == 1
    assert result.truncated is False


def test_decode_fixpoint_flags_truncation_at_round_limit() -> None:
    nested = "%" + "25" * 12 + "41"

    result = decode_fixpoint(nested, max_rounds=10)

    assert result.truncated is True
    assert result.iterations == 10
    assert result.final_value == "%" + "25" * 2 + "41"
    assert result.changed is True


def test_decode_fixpoint_reaching_fixpoint_on_last_round_is_not_truncated() -> None:
    nested = "%" + "25" * 9 + "41"

    result = decode_fixpoint(nested, max_rounds=10)

    assert result.final_value == "A"
    assert result.iterations == 10
    assert result.truncated is False


def test_decode_fixpoint_is_idempotent() -> None:
    samples = [
        "%ED%95%9C%EA%B5%AD",
        "%25ED%2595%259C",
        "plain-slug",
        "%25zz",
        "%E0%A4%A",
        "mixed-%ED%98%B8%ED%85%94-2024",
        "",
    ]
    for sample in samples:
        once = decode_fixpoint(sample).final_value
        assert decode_fixpoint(once).final_value == once


def test_needs_decoding_ignores_blank_and_decoded_slugs() -> None:
    assert needs_decoding(None) is False
    assert needs_decoding("   ") is False
    assert needs_decoding("호텔") is False
    assert needs_decoding(" %ED%98%B8%ED%85%94 ") is True
