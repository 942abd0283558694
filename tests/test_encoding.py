# File: tests/test_encoding.py
import pytest

from site_loader.encoding import EncodingDetector, decode

KOREAN = "안녕하세요, 세계"


@pytest.mark.parametrize(
    "marker",
    [
        'charset=euc-kr',
        'charset=EUC-KR',
        'charset="Euc-Kr"',
        "charset='cp949'",
        'charset=KS_C_5601-1987',
    ],
)
def test_regional_marker_switches_whole_buffer(marker):
    head = f'<html><head><meta http-equiv="Content-Type" content="text/html; {marker}"></head>'
    body = "<body>" + KOREAN * 400 + "</body></html>"
    data = head.encode("ascii") + body.encode("cp949")

    assert len(data) > 2000
    assert decode(data) == head + body


def test_without_marker_buffer_is_utf8():
    text = '<html><head><meta charset="utf-8"></head><body>' + KOREAN + "</body></html>"
    data = text.encode("utf-8")

    detector = EncodingDetector()
    assert detector.detect(data) == "utf-8"
    assert detector.decode(data) == text


def test_ascii_is_identical_under_both_decoders():
    plain = b"<html><body>plain ascii only</body></html>"
    marked = b"<meta charset=euc-kr>" + plain

    assert decode(plain) == plain.decode("utf-8")
    assert decode(marked) == marked.decode("ascii")


def test_marker_outside_preview_is_ignored():
    data = b" " * 2000 + b"charset=euc-kr"
    assert EncodingDetector().detect(data) == "utf-8"
    assert EncodingDetector(preview_bytes=4000).detect(data) == "cp949"


def test_invalid_bytes_are_replaced_not_fatal():
    assert decode(b"ok \xff\xfe end") == "ok �� end"


def test_custom_charset_table():
    text = "こんにちは"
    data = b'<meta charset="Shift_JIS">' + text.encode("shift_jis")
    detector = EncodingDetector({"shift_jis": "shift_jis"})
    assert detector.decode(data).endswith(text)
