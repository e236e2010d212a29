"""Lifecycle state machine driven by a manual clock."""

import pytest

from subtitle_overlay.lifecycle import MIN_FADE_SECONDS, Phase, RevealMode, SubtitleLifecycle, reveal_mode_for
from subtitle_overlay.messages import RawUpdate
from subtitle_overlay.settings import RenderSettings

INSTANT = RenderSettings(display_duration=2.0, fade_out_duration=0.5)
LETTERS = RenderSettings(
    animation="letter-by-letter",
    letter_by_letter=True,
    letter_delay=100,
    display_duration=2.0,
    fade_out_duration=0.5,
)
WORDS = RenderSettings(display_mode="sequential", sequential_word_delay=200, display_duration=2.0)


class Recorder:
    def __init__(self):
        self.states = []
        self.clears = 0

    def on_change(self, state):
        self.states.append(state)

    def on_clear(self):
        self.clears += 1


def make(scheduler, settings):
    rec = Recorder()
    lc = SubtitleLifecycle(scheduler, settings, on_change=rec.on_change, on_clear=rec.on_clear)
    return lc, rec


def partial(text):
    return RawUpdate.partial(text)


def committed(text):
    return RawUpdate.committed(text)


def to_fading(lc, scheduler, text):
    lc.handle_update(partial(text))
    for _ in range(1000):
        if lc.phase is Phase.FADING:
            return
        scheduler.advance(0.05)
    raise AssertionError(f"never started fading, stuck in {lc.phase}")


# ----------------------------------------------------------------------
# Reveal modes
# ----------------------------------------------------------------------

def test_reveal_mode_for():
    assert reveal_mode_for(INSTANT) is RevealMode.INSTANT
    assert reveal_mode_for(LETTERS) is RevealMode.CHARACTER
    assert reveal_mode_for(WORDS) is RevealMode.WORD
    # letter_by_letter without the matching animation is instant
    assert reveal_mode_for(RenderSettings(letter_by_letter=True)) is RevealMode.INSTANT


# ----------------------------------------------------------------------
# IDLE -> PRINTING -> WAITING -> FADING -> IDLE
# ----------------------------------------------------------------------

def test_idle_to_printing_then_growing_target(scheduler):
    lc, rec = make(scheduler, LETTERS)

    assert lc.handle_update(partial("Hello wor"))
    assert lc.phase is Phase.PRINTING
    assert lc.state.target_text == "Hello wor"
    assert lc.state.opacity == 1.0

    scheduler.advance(0.35)
    assert lc.state.visible_text == "Hel"

    assert lc.handle_update(partial("Hello world."))
    state = lc.state
    assert state.phase is Phase.PRINTING
    assert state.target_text == "Hello world."
    assert state.visible_text == "Hel"  # progress on the shared prefix is kept
    assert state.animation_cursor == 3

    scheduler.advance(1.0)
    assert lc.phase is Phase.WAITING
    assert lc.state.visible_text == "Hello world."


def test_cursor_clamps_to_shorter_target(scheduler):
    lc, _ = make(scheduler, LETTERS)
    lc.handle_update(partial("Hello world"))
    scheduler.advance(0.85)
    assert lc.state.animation_cursor == 8

    lc.handle_update(partial("Hi"))
    assert lc.state.animation_cursor == 2
    assert lc.state.visible_text == "Hi"

    scheduler.advance(0.15)
    assert lc.phase is Phase.WAITING


def test_full_cycle_commits_history_and_clears_once(scheduler):
    lc, rec = make(scheduler, INSTANT)
    lc.handle_update(partial("Hello"))
    assert lc.phase is Phase.WAITING
    assert lc.state.visible_text == "Hello"

    scheduler.advance(2.0)
    assert lc.phase is Phase.FADING
    assert lc.state.opacity == 0.0
    assert lc.state.visible_text == "Hello"

    scheduler.advance(0.5)
    assert lc.phase is Phase.IDLE
    assert lc.history == "Hello"
    assert lc.state.visible_text == ""
    assert rec.clears == 1

    scheduler.run_all()
    assert rec.clears == 1


def test_word_reveal(scheduler):
    lc, _ = make(scheduler, WORDS)
    lc.handle_update(partial("one two three"))
    assert lc.state.visible_text == ""

    scheduler.advance(0.2)
    assert lc.state.visible_text == "one"
    scheduler.advance(0.2)
    assert lc.state.visible_text == "one two"
    scheduler.advance(0.2)
    assert lc.state.visible_text == "one two three"
    assert lc.phase is Phase.WAITING


# ----------------------------------------------------------------------
# Interruptions
# ----------------------------------------------------------------------

def test_waiting_ignores_repeat_of_current_text(scheduler):
    lc, rec = make(scheduler, INSTANT)
    lc.handle_update(partial("Hi there"))
    assert lc.phase is Phase.WAITING
    [display_timer] = scheduler.pending
    notified = len(rec.states)

    assert not lc.handle_update(committed("Hi there"))
    assert lc.phase is Phase.WAITING
    assert scheduler.pending == [display_timer]
    assert len(rec.states) == notified


def test_waiting_interrupted_by_new_text(scheduler):
    lc, _ = make(scheduler, INSTANT)
    lc.handle_update(partial("Hi there"))
    [display_timer] = scheduler.pending

    scheduler.advance(1.5)
    assert lc.handle_update(partial("Hi there friend"))
    assert not display_timer.active
    assert lc.phase is Phase.WAITING
    assert lc.state.visible_text == "Hi there friend"

    # Display timer restarted from the interruption
    scheduler.advance(1.0)
    assert lc.phase is Phase.WAITING
    scheduler.advance(1.0)
    assert lc.phase is Phase.FADING


def test_hard_cut_during_fade(scheduler):
    lc, rec = make(scheduler, LETTERS)
    to_fading(lc, scheduler, "Goodbye")
    [fade_timer] = scheduler.pending

    assert lc.handle_update(partial("Goodbye friend"))
    state = lc.state
    assert not fade_timer.active
    assert lc.history == "Goodbye"
    assert state.phase is Phase.PRINTING
    assert state.target_text == "friend"
    assert state.visible_text == ""
    assert state.opacity == 1.0

    scheduler.advance(0.65)
    assert lc.phase is Phase.WAITING
    assert lc.state.visible_text == "friend"
    assert rec.clears == 0


def test_hard_cut_with_nothing_new_goes_idle(scheduler):
    lc, rec = make(scheduler, INSTANT)
    to_fading(lc, scheduler, "Goodbye")

    lc.handle_update(partial("Goodbye."))
    assert lc.phase is Phase.IDLE
    assert lc.history == "Goodbye"
    assert scheduler.pending == []
    assert rec.clears == 1


def test_hard_cut_with_unrelated_text_starts_fresh(scheduler):
    lc, rec = make(scheduler, LETTERS)
    to_fading(lc, scheduler, "Goodbye")
    [fade_timer] = scheduler.pending

    assert lc.handle_update(partial(", Something else"))
    state = lc.state
    assert not fade_timer.active
    assert lc.history == ""
    assert state.phase is Phase.PRINTING
    assert state.target_text == "Something else"
    assert state.visible_text == ""
    assert rec.clears == 0


def test_hard_cut_leaving_only_an_artifact_goes_idle(scheduler):
    lc, rec = make(scheduler, INSTANT)
    to_fading(lc, scheduler, "Goodbye")
    [fade_timer] = scheduler.pending

    # Whole update: 4 distinct of 19 words. Remainder: 3 distinct of 18 words.
    raw = "Goodbye" + " bang" * 16 + " boom pow"
    lc.handle_update(partial(raw))
    assert not fade_timer.active
    assert lc.phase is Phase.IDLE
    assert lc.history == "Goodbye"
    assert lc.state.visible_text == ""
    assert scheduler.pending == []
    assert rec.clears == 1


def test_continuation_after_fade_shows_only_new_words(scheduler):
    lc, _ = make(scheduler, INSTANT)
    to_fading(lc, scheduler, "Hello")
    scheduler.advance(0.5)
    assert lc.phase is Phase.IDLE

    lc.handle_update(partial("Hello world"))
    assert lc.state.target_text == "world"
    assert lc.history == "Hello"


def test_unrelated_text_resets_history(scheduler):
    lc, _ = make(scheduler, INSTANT)
    to_fading(lc, scheduler, "Hello")
    scheduler.advance(0.5)

    lc.handle_update(partial("Something else"))
    assert lc.history == ""
    assert lc.state.target_text == "Something else"


# ----------------------------------------------------------------------
# Discarded input
# ----------------------------------------------------------------------

def test_empty_updates_are_ignored(scheduler):
    lc, rec = make(scheduler, INSTANT)
    assert not lc.handle_update(committed(""))
    assert not lc.handle_update(partial("   "))
    assert lc.phase is Phase.IDLE
    assert rec.states == []


def test_trailing_punctuation_after_fade_does_not_reopen(scheduler):
    lc, _ = make(scheduler, INSTANT)
    to_fading(lc, scheduler, "Hello")
    scheduler.advance(0.5)

    assert not lc.handle_update(committed("Hello."))
    assert lc.phase is Phase.IDLE
    assert not lc.handle_update(partial("..."))
    assert lc.phase is Phase.IDLE


@pytest.mark.parametrize("artifact", ["ᱚ", "Hello ᱚ", "Hel\ufffdlo", " ".join(["bang"] * 18 + ["boom", "pow"])])
def test_artifacts_ignored_in_every_phase(scheduler, artifact):
    lc, _ = make(scheduler, LETTERS)
    assert not lc.handle_update(partial(artifact))
    assert lc.phase is Phase.IDLE

    lc.handle_update(partial("Hello"))
    assert lc.phase is Phase.PRINTING
    assert not lc.handle_update(partial(artifact))
    assert lc.phase is Phase.PRINTING
    assert lc.state.target_text == "Hello"

    scheduler.advance(0.55)
    assert lc.phase is Phase.WAITING
    assert not lc.handle_update(partial(artifact))
    assert lc.phase is Phase.WAITING

    scheduler.advance(2.0)
    assert lc.phase is Phase.FADING
    assert not lc.handle_update(partial(artifact))
    assert lc.phase is Phase.FADING


# ----------------------------------------------------------------------
# Timers
# ----------------------------------------------------------------------

def test_at_most_one_timer_pending(scheduler):
    lc, _ = make(scheduler, LETTERS)
    script = ["Hel", "Hello", "Hello there", "Hi", "Hi you", "Hi you all"]
    for text in script:
        lc.handle_update(partial(text))
        assert len(scheduler.pending) <= 1
        scheduler.advance(0.25)
        assert len(scheduler.pending) <= 1
    scheduler.advance(2.5)
    lc.handle_update(partial("Hi you all, bye"))
    assert len(scheduler.pending) <= 1


def test_zero_display_duration_pins_caption(scheduler):
    lc, rec = make(scheduler, RenderSettings(display_duration=0.0))
    lc.handle_update(partial("Pinned"))
    assert lc.phase is Phase.PRINTING
    assert lc.state.visible_text == "Pinned"
    assert scheduler.pending == []

    scheduler.run_all()
    assert lc.phase is Phase.PRINTING
    assert rec.clears == 0

    lc.handle_update(partial("Pinned caption"))
    assert lc.state.visible_text == "Pinned caption"


def test_zero_fade_still_goes_through_timer(scheduler):
    lc, rec = make(scheduler, RenderSettings(display_duration=1.0, fade_out_duration=0.0))
    lc.handle_update(partial("Quick"))
    scheduler.advance(1.0)
    assert lc.phase is Phase.FADING

    scheduler.advance(MIN_FADE_SECONDS / 2)
    assert lc.phase is Phase.FADING
    scheduler.advance(MIN_FADE_SECONDS)
    assert lc.phase is Phase.IDLE
    assert rec.clears == 1


def test_settings_change_applies_to_next_timer(scheduler):
    lc, _ = make(scheduler, LETTERS)
    lc.handle_update(partial("Hey"))
    lc.update_settings(RenderSettings(
        animation="letter-by-letter", letter_by_letter=True, letter_delay=100, display_duration=10.0,
    ))
    scheduler.advance(0.35)
    assert lc.phase is Phase.WAITING

    scheduler.advance(5.0)
    assert lc.phase is Phase.WAITING
    scheduler.advance(5.0)
    assert lc.phase is Phase.FADING


def test_pinned_caption_fades_after_display_duration_is_set(scheduler):
    lc, rec = make(scheduler, RenderSettings(display_duration=0.0))
    lc.handle_update(partial("Pinned"))
    assert lc.phase is Phase.PRINTING
    assert scheduler.pending == []

    lc.update_settings(RenderSettings(display_duration=1.0, fade_out_duration=0.5))
    assert lc.phase is Phase.WAITING
    assert len(scheduler.pending) == 1

    scheduler.advance(1.0)
    assert lc.phase is Phase.FADING
    scheduler.advance(0.5)
    assert lc.phase is Phase.IDLE
    assert lc.history == "Pinned"
    assert rec.clears == 1


def test_reveal_switched_to_instant_completes(scheduler):
    lc, _ = make(scheduler, LETTERS)
    lc.handle_update(partial("Hello"))
    scheduler.advance(0.35)
    assert lc.state.visible_text == "Hel"

    lc.update_settings(RenderSettings(display_duration=2.0))
    assert lc.phase is Phase.WAITING
    assert lc.state.visible_text == "Hello"
    assert len(scheduler.pending) == 1


def test_reveal_switched_from_words_to_letters_keeps_progress(scheduler):
    lc, _ = make(scheduler, WORDS)
    lc.handle_update(partial("one two three"))
    scheduler.advance(0.25)
    assert lc.state.visible_text == "one"

    lc.update_settings(LETTERS)
    assert lc.state.visible_text == "one"
    assert lc.state.animation_cursor == 3
    scheduler.advance(0.15)
    assert lc.state.visible_text == "one "


def test_unrelated_settings_change_does_not_restart_reveal(scheduler):
    lc, _ = make(scheduler, LETTERS)
    lc.handle_update(partial("Hello"))
    [step_timer] = scheduler.pending

    lc.update_settings(RenderSettings(
        animation="letter-by-letter", letter_by_letter=True, letter_delay=100,
        display_duration=2.0, fade_out_duration=0.5, opacity=0.5,
    ))
    assert step_timer.active
    assert scheduler.pending == [step_timer]


def test_close_cancels_everything(scheduler):
    lc, rec = make(scheduler, INSTANT)
    lc.handle_update(partial("Hello"))
    notified = len(rec.states)

    lc.close()
    assert scheduler.pending == []
    scheduler.run_all()
    assert not lc.handle_update(partial("Hello again"))
    assert len(rec.states) == notified
    assert rec.clears == 0


def test_notifications_only_on_visible_change(scheduler):
    lc, rec = make(scheduler, LETTERS)
    lc.handle_update(partial("abc"))
    scheduler.run_all()

    seen = [(s.phase, s.visible_text, s.opacity) for s in rec.states]
    assert len(seen) == len(set(seen))
    assert seen[-1] == (Phase.IDLE, "", 0.0)
