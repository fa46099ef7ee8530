from pdf_stream_annotator.parsing.recognizer import recognize, split_pending


def test_plain_prose_short_circuits():
    result = recognize("The mitochondria is the powerhouse of the cell.", 1)
    assert result.matches == []
    assert result.text == "The mitochondria is the powerhouse of the cell."
    assert result.pending == ""
    assert not result.had_commands


def test_recognizing_cleaned_prose_again_changes_nothing():
    first = recognize("See [HIGHLIGHT 1 80 120 400 60] and [GO TO PAGE 2] now", 1)
    assert "[" not in first.text

    second = recognize(first.text, 1)
    assert second.matches == []
    assert second.text == first.text


def test_cleaned_prose_keeps_surrounding_text_and_newlines():
    result = recognize("Intro\n\nLook here [HIGHLIGHT 1 80 120 400 60] closely.", 1)
    assert result.text == "Intro\n\nLook here closely."


def test_keyword_glued_to_digit_is_recognized():
    result = recognize("[HIGHLIGHT1 80 120 400 60]", 2)
    assert len(result.matches) == 1
    match = result.matches[0]
    assert (match.page, match.x, match.y, match.width, match.height) == (1, 80, 120, 400, 60)


def test_unterminated_command_is_held_back():
    result = recognize("Look at this [HIGHLIGHT 1 80", 1)
    assert result.text == "Look at this "
    assert result.pending == "[HIGHLIGHT 1 80"
    assert result.matches == []


def test_held_bracket_completes_with_next_fragment():
    first = recognize("Look at this [HIGH", 1)
    assert first.pending == "[HIGH"

    second = recognize("LIGHT 1 100 200 300 50] carefully", 1, pending=first.pending)
    assert second.pending == ""
    assert len(second.matches) == 1
    assert second.text == " carefully"


def test_partial_navigation_bracket_is_held():
    ready, held = split_pending("Now [GO TO PA")
    assert ready == "Now "
    assert held == "[GO TO PA"


def test_non_command_bracket_is_not_held():
    ready, held = split_pending("as shown in [Smith")
    assert held == ""
    assert ready == "as shown in [Smith"


def test_lone_open_bracket_is_held():
    assert split_pending("text [") == ("text ", "[")


def test_overlong_unterminated_bracket_is_released_as_prose():
    fragment = "[HIGHLIGHT " + "1 " * 120
    result = recognize(fragment, 1, max_pending=200)
    assert result.pending == ""
    assert result.text == fragment
    assert not result.had_commands


def test_unresolvable_command_is_removed_and_flagged():
    result = recognize("Note [HIGHLIGHT the key sentence] here", 1)
    assert result.matches == []
    assert result.had_commands
    assert result.text == "Note here"


def test_navigation_brackets_are_stripped_from_prose():
    result = recognize("Let me show you [NEXT PAGE] the table.", 4)
    assert result.text == "Let me show you the table."
    assert not result.had_commands
