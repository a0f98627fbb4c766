import sys

import atheris

with atheris.instrument_imports():
    from sdbridge.errors import PropertyParseError
    from sdbridge.properties import ACTIVE_STATES, UnitProperties


def TestOneInput(data: bytes) -> None:
    """Fuzz systemctl property parsing with arbitrary text."""
    text = data.decode("utf-8", errors="ignore")

    try:
        props = UnitProperties.parse(text)
    except PropertyParseError:
        return  # Expected for malformed input

    assert props.state() in ACTIVE_STATES
    assert props.property("ActiveState") == props.state()


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
