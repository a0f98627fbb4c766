import sys

import atheris

with atheris.instrument_imports():
    from sdbridge.notify import Custom, parse_notification, render


def TestOneInput(data: bytes) -> None:
    """Fuzz notification line parsing and check re-rendering is stable."""
    line = data.decode("utf-8", errors="ignore").replace("\n", "")

    try:
        notification = parse_notification(line)
    except ValueError:
        return  # Expected for lines outside the vocabulary

    rendered = render(notification)
    assert rendered.endswith("\n")
    if not isinstance(notification, Custom):
        assert parse_notification(rendered) == notification


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
