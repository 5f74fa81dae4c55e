import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from envvault.core.env_codec import decode, encode


def test_decode_skips_comments_blanks_and_malformed_lines():
    result = decode("FOO=bar\n# comment\n\nBAD_LINE\nBAZ=\"qux quux\"")
    assert result.pairs == [("FOO", "bar"), ("BAZ", "qux quux")]
    assert result.skipped == 1


def test_decode_value_keeps_everything_after_first_equals():
    result = decode("URL=postgres://u:p@host/db?sslmode=require")
    assert result.pairs == [("URL", "postgres://u:p@host/db?sslmode=require")]


def test_decode_strips_one_layer_of_matched_quotes_only():
    result = decode("A='single'\nB=\"double\"\nC=\"mismatch'\nD=\"\"nested\"\"")
    assert result.pairs == [
        ("A", "single"),
        ("B", "double"),
        ("C", "\"mismatch'"),
        ("D", "\"nested\""),
    ]


def test_decode_indented_comment_and_empty_key():
    result = decode("   # indented comment\n=novalue\nEMPTY=")
    assert result.pairs == [("EMPTY", "")]
    assert result.skipped == 1


def test_decode_handles_crlf_and_export_prefix():
    result = decode("export TOKEN=abc\r\nPLAIN=x\r\n")
    assert result.pairs == [("TOKEN", "abc"), ("PLAIN", "x")]


def test_encode_quotes_whitespace_and_equals():
    text = encode([("A", "plain"), ("B", "has space"), ("C", "k=v"), ("D", "")])
    assert text == 'A=plain\nB="has space"\nC="k=v"\nD=\n'


def test_encode_empty_set_is_empty_text():
    assert encode([]) == ""


def test_round_trip_preserves_pairs():
    pairs = [
        ("OPENAI_API_KEY", "sk-abc123"),
        ("SPACED", "  leading and trailing  "),
        ("EQUALS", "a=b=c"),
        ("QUOTED", '"already quoted"'),
        ("APOS", "'x"),
        ("TAB", "a\tb"),
        ("lower.case-key", "ok"),
        ("EMPTY", ""),
        ("UNICODE", "pässwörd"),
    ]
    assert decode(encode(pairs)).pairs == pairs


def test_encode_single_quotes_values_the_shell_would_run():
    pairs = [("CMD", "$(rm -rf ~)"), ("SEMI", "a;b"), ("TICK", "`id`")]
    text = encode(pairs)
    assert text == "CMD='$(rm -rf ~)'\nSEMI='a;b'\nTICK='`id`'\n"
    assert decode(text).pairs == pairs


def test_encode_warns_on_keys_decode_would_rewrite(caplog):
    with caplog.at_level(logging.WARNING, logger="envvault.core.env_codec"):
        text = encode([("export X", "1"), ("A ", "2"), ("PLAIN", "3")])
    assert text == "export X=1\nA =2\nPLAIN=3\n"
    warned = [r.getMessage() for r in caplog.records if r.name == "envvault.core.env_codec"]
    assert len(warned) == 2
    assert "'export X'" in warned[0]
    assert "'A '" in warned[1]
