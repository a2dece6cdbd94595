from adcreative.middlewares.body_guard import inspect_body


def test_small_json_passes() -> None:
    assert inspect_body(b'{"image_url": "https://cdn.example.com/a.jpg"}') is None


def test_declared_length_counts_towards_limit() -> None:
    assert inspect_body(b"{}", declared_length=50, max_body_bytes=10) == "oversize:50"


def test_data_url_is_blocked_even_when_small() -> None:
    body = ('{"image_url": "data:image/webp;base64,' + "A" * 300 + '"}').encode()
    assert inspect_body(body) == "base64"


def test_long_base64_run_only_checked_above_inline_limit() -> None:
    body = ('{"blob": "' + "Q" * 9000 + '"}').encode()
    assert inspect_body(body, max_inline_base64_bytes=64 * 1024) is None
    assert inspect_body(body, max_inline_base64_bytes=1024) == "base64"


def test_limits_can_be_disabled() -> None:
    body = b"x" * 4096
    assert inspect_body(body, max_body_bytes=None, max_inline_base64_bytes=None) is None
