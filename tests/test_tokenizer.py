import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.csv_rows.tokenizer import (
    CsvTokenizer,
    Dialect,
    DialectError,
    QuoteState,
    iter_rows,
    parse,
    parse_csv,
)


def test_empty_input_has_no_rows():
    assert parse("") == []


def test_single_character():
    assert parse("x") == [["x"]]


def test_single_row():
    assert parse("a,b,c") == [["a", "b", "c"]]


@pytest.mark.parametrize(
    "text",
    [
        "a,b\nc,d",
        "a,b\r\nc,d",
        "a,b\rc,d",
    ],
)
def test_line_endings(text):
    assert parse(text) == [["a", "b"], ["c", "d"]]


def test_mixed_line_endings_in_one_document():
    tok = CsvTokenizer()
    rows = tok.parse("a\r\nb\nc\rd")
    assert rows == [["a"], ["b"], ["c"], ["d"]]
    assert tok.line_endings == {"crlf": 1, "lf": 1, "cr": 1}


def test_crlf_is_one_terminator_not_two_rows():
    assert parse("a\r\n\r\nb") == [["a"], [""], ["b"]]


def test_delimiter_inside_quotes_is_literal():
    assert parse('"a,b",c') == [["a,b", "c"]]


def test_doubled_quote_collapses():
    assert parse('"a""b",c') == [['a"b', "c"]]


def test_terminators_inside_quotes_are_literal():
    assert parse('"x\r\ny",z\nq') == [["x\r\ny", "z"], ["q"]]


def test_quote_in_middle_of_unquoted_cell_opens_quoting():
    # 引用符はセルの途中でも状態を切り替える（文字としては残らない）
    assert parse('ab"c,d"e,f') == [["abc,de", "f"]]


def test_trailing_delimiter_before_terminator():
    assert parse("a,\n") == [["a", ""]]


def test_trailing_delimiter_at_end_of_input():
    assert parse("a,") == [["a", ""]]


def test_trailing_terminator_does_not_add_empty_row():
    assert parse("a\n") == [["a"]]
    assert parse("a,b\r\n") == [["a", "b"]]


def test_trailing_empty_line_with_delimiter_is_kept():
    # 最終行が空でも区切り文字があれば行になる（改行だけの場合とは非対称）
    assert parse("a\n,") == [["a"], ["", ""]]


def test_closed_empty_quoted_cell_at_end_is_not_flushed():
    assert parse('a\n""') == [["a"]]


def test_blank_lines_in_the_middle_are_rows():
    assert parse("a\n\nb") == [["a"], [""], ["b"]]


def test_unterminated_quote_absorbs_rest_of_input():
    tok = CsvTokenizer()
    rows = tok.parse('"unterminated,a\nb')
    assert rows == [["unterminated,a\nb"]]
    assert tok.state is QuoteState.QUOTED


def test_unterminated_quote_after_complete_rows():
    assert parse('a,b\nc,"d\r\ne,f') == [["a", "b"], ["c", "d\r\ne,f"]]


def test_state_is_unquoted_after_balanced_input():
    tok = CsvTokenizer()
    tok.parse('"a",b')
    assert tok.state is QuoteState.UNQUOTED


def test_rows_may_differ_in_width():
    assert parse("a,b,c\nd\ne,f") == [["a", "b", "c"], ["d"], ["e", "f"]]


def test_unicode_text():
    assert parse("nom,ciutat\nJosé,València") == [["nom", "ciutat"], ["José", "València"]]


def test_iter_rows_is_lazy():
    rows = iter_rows("a\nb\n\"never closed")
    assert next(rows) == ["a"]
    assert next(rows) == ["b"]
    assert next(rows) == ["never closed"]
    with pytest.raises(StopIteration):
        next(rows)


def test_parse_csv_alias():
    assert parse_csv is parse


def test_tokenizer_instance_can_be_reused():
    tok = CsvTokenizer()
    tok.parse('"open')
    assert tok.parse("a\nb") == [["a"], ["b"]]
    assert tok.state is QuoteState.UNQUOTED
    assert tok.line_endings == {"crlf": 0, "lf": 1, "cr": 0}


def test_interleaved_scans_on_one_instance_are_independent():
    tok = CsvTokenizer()
    first = tok.iter_rows('a\n"open')
    second = tok.iter_rows("x\ny,z")

    assert next(first) == ["a"]
    assert next(second) == ["x"]
    # 1 つ目のスキャンが QUOTED で終わっても 2 つ目には影響しない
    assert list(first) == [["open"]]
    assert list(second) == [["y", "z"]]


def test_interleaved_scans_keep_their_own_line_ending_counts():
    tok = CsvTokenizer()
    first = tok.iter_rows("a\r\nb\r\nc")
    second = tok.iter_rows("x\ny")

    next(first)
    assert list(second) == [["x"], ["y"]]
    assert tok.line_endings == {"crlf": 0, "lf": 1, "cr": 0}

    assert list(first) == [["b"], ["c"]]
    assert tok.line_endings == {"crlf": 2, "lf": 0, "cr": 0}
    assert tok.state is QuoteState.UNQUOTED


def test_shared_instance_across_threads():
    tok = CsvTokenizer()
    texts = [f'"{i},{i}"\n{i},x\r\n"open' if i % 2 else f"{i},y\n{i}" for i in range(40)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(tok.parse, texts))

    assert results == [parse(t) for t in texts]


def test_custom_delimiter():
    dialect = Dialect(delimiter=";")
    assert parse('a;"b;c",d\n1;2', dialect) == [["a", "b;c,d"], ["1", "2"]]


def test_custom_quote_char():
    dialect = Dialect(quote_char="'")
    assert parse("'a,b','it''s'", dialect) == [["a,b", "it's"]]


def test_comma_is_plain_text_with_other_delimiter():
    assert parse("a,b\tc", Dialect(delimiter="\t")) == [["a,b", "c"]]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"delimiter": ""},
        {"delimiter": ",,"},
        {"quote_char": ""},
        {"delimiter": '"'},
        {"delimiter": "\n"},
        {"quote_char": "\r"},
    ],
)
def test_invalid_dialect(kwargs):
    with pytest.raises(DialectError):
        Dialect(**kwargs)


def test_dialect_error_is_value_error():
    assert issubclass(DialectError, ValueError)


def test_many_doubled_quotes_scale_linearly():
    # "" の連続でも 1 パスで処理できること（極端に遅くならない）
    cell = '""' * 200_000
    text = f'"{cell}",x'
    start = time.perf_counter()
    rows = parse(text)
    elapsed = time.perf_counter() - start

    assert rows == [['"' * 200_000, "x"]]
    assert elapsed < 10
