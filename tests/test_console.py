import pytest

from teachos.console import INPUT_BUF, ConsoleInput, cprintf, format_int
from teachos.kbd import ctrl
from teachos.layout import KernelPanic


@pytest.mark.parametrize("value", [0, 7, -42, 123456, -(2**31), 2**31 - 1])
def test_format_int_decimal_round_trip(value):
    assert int(format_int(value, 10, True)) == value


@pytest.mark.parametrize("value", [0, 1, 16, 0xDEAD, 0xFFFFFFFF])
def test_format_int_hex_round_trip(value):
    assert int(format_int(value, 16, False), 16) == value


def test_format_int_unsigned_wraps():
    assert int(format_int(-1, 16, False), 16) == 0xFFFFFFFF


def test_format_int_lower_case_hex():
    assert format_int(255, 16, False) == "ff"


def test_cprintf_directives():
    result = cprintf("%d and %x and %p", -3, 255, 4096)
    expected = (
        format_int(-3, 10, True)
        + " and "
        + format_int(255, 16, False)
        + " and "
        + format_int(4096, 16, False)
    )
    assert result == expected


def test_cprintf_wraps_decimal_to_32_bits():
    assert cprintf("%d", 0xFFFFFFFF) == format_int(-1, 10, True)


def test_cprintf_strings():
    assert cprintf("name %s.", "disk") == "name disk."
    assert cprintf("%s", None) == "(null)"


def test_cprintf_percent_handling():
    assert cprintf("100%%") == "100%"
    assert cprintf("%q") == "%q"
    assert cprintf("50%") == "50"


def test_cprintf_null_format_panics():
    with pytest.raises(KernelPanic):
        cprintf(None)


def test_line_echoed_and_read():
    console = ConsoleInput()
    assert console.interrupt("hi\n") == "hi\n"
    assert console.read(10) == "hi\n"


def test_backspace_edits_line():
    console = ConsoleInput()
    echo = console.interrupt("ab\x7fc\n")
    assert echo.count("\b \b") == 1
    assert console.read(10) == "ac\n"


def test_backspace_on_empty_line_does_nothing():
    console = ConsoleInput()
    assert console.interrupt(chr(ctrl("H"))) == ""


def test_kill_line():
    console = ConsoleInput()
    echo = console.interrupt("junk" + chr(ctrl("U")) + "ok\n")
    assert echo.count("\b \b") == len("junk")
    assert console.read(10) == "ok\n"


def test_carriage_return_becomes_newline():
    console = ConsoleInput()
    console.interrupt("x\r")
    assert console.read(10) == "x\n"


def test_control_d_ends_input():
    console = ConsoleInput()
    console.interrupt("ab" + chr(ctrl("D")))
    assert console.read(10) == "ab"
    assert console.read(10) == ""


def test_partial_reads():
    console = ConsoleInput()
    console.interrupt("hello\n")
    assert console.read(2) == "he"
    assert console.read(10) == "llo\n"


def test_buffer_full_drops_extra_characters():
    console = ConsoleInput()
    echo = console.interrupt("y" * (INPUT_BUF + 2))
    assert len(echo) == INPUT_BUF
    assert console.read(INPUT_BUF) == "y" * INPUT_BUF


def test_integer_codes_and_negative_stop():
    console = ConsoleInput()
    echo = console.interrupt([ord("a"), ord("\n"), -1, ord("b")])
    assert echo == "a\n"
    assert console.read(10) == "a\n"


def test_process_dump_requested():
    console = ConsoleInput()
    assert console.dump_requested is False
    console.interrupt(chr(ctrl("P")))
    assert console.dump_requested is True


def test_cancel_interrupts_read():
    console = ConsoleInput()
    console.cancel()
    with pytest.raises(InterruptedError):
        console.read(1)