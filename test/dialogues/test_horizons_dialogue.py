"""Replay tests for the Horizons SPK request dialogue."""

import pytest

from horizons_spk.dialogue.engine import DialogueEngine
from horizons_spk.dialogues.horizons import HORIZONS_DIALOGUE
from horizons_spk.models.outcome import AbortReason
from horizons_spk.models.spk import SpkFormat, SpkRequest

# Index of the chunk released by each send in horizons_success.txt
ELEMENTS_RESPONSE = 4
GENERATE_RESPONSE = 7
START_RESPONSE = 11


@pytest.fixture
def request_inputs():
    def _inputs(**overrides):
        fields = dict(
            object_name="Test Object",
            start="2020-Jan-01",
            stop="2020-Jun-01",
            email="someone@example.com",
            elements="EPOCH=2459000.5 EC=.1 QR=1.2 TP=2459100.5 OM=100 W=20 IN=5",
        )
        fields.update(overrides)
        return SpkRequest(**fields).dialogue_inputs()

    return _inputs


def run(session, inputs):
    return DialogueEngine(session).run(HORIZONS_DIALOGUE, inputs)


class TestHorizonsDialogueSuccess:
    def test_completed_context(self, scripted_session, transcript, request_inputs):
        session = scripted_session(transcript("horizons_success.txt"), label="horizons")

        outcome = run(session, request_inputs())

        assert outcome.ok
        assert outcome.context == {
            "format_suffix": ".bsp",
            "spk_id": 1000003,
            "local_filename": "1000003.bsp",
            "remote_filename": "wld12345.15",
        }

    def test_sends_every_answer_in_order(self, scripted_session, transcript, request_inputs):
        session = scripted_session(transcript("horizons_success.txt"))

        run(session, request_inputs())

        assert session.sent == [
            "PAGE",
            "##2",
            ";",
            "EPOCH=2459000.5 EC=.1 QR=1.2 TP=2459100.5 OM=100 W=20 IN=5",
            "ECLIP",
            "Test Object",
            "S",
            "someone@example.com",
            "yes",
            "B",
            "2020-Jan-01",
            "2020-Jun-01",
            "NO",
            "x",
        ]

    def test_text_format_uses_transfer_suffix(self, scripted_session, transcript, request_inputs):
        session = scripted_session(transcript("horizons_success.txt"))

        outcome = run(session, request_inputs(spk_format=SpkFormat.TEXT))

        assert outcome.context["local_filename"] == "1000003.xsp"
        assert "X" in session.sent

    def test_output_override_skips_id_capture(self, scripted_session, transcript, request_inputs):
        session = scripted_session(transcript("horizons_success.txt"))

        outcome = run(session, request_inputs(output="mine.bsp"))

        assert outcome.ok
        assert outcome.context["local_filename"] == "mine.bsp"
        assert "spk_id" not in outcome.context


class TestHorizonsDialogueAborts:
    def test_span_too_short(self, scripted_session, transcript, request_inputs):
        session = scripted_session(transcript("horizons_span_too_short.txt"))

        outcome = run(session, request_inputs(stop="2020-Jan-15"))

        assert outcome.reason == AbortReason.SPAN_TOO_SHORT
        assert outcome.stage_name == "stop"
        assert "Span too small" in outcome.diagnostic_text
        assert session.sent.count("x") == 1
        assert "NO" not in session.sent

    def test_invalid_start_date(self, scripted_session, transcript, request_inputs):
        chunks = transcript("horizons_success.txt")[: START_RESPONSE + 1]
        chunks[START_RESPONSE] = (
            "2020-Foo-01\n"
            " Cannot interpret date. Type \"?!\" for valid formats.\n"
            " Starting TDB [>=1900-Jan-01] : "
        )
        session = scripted_session(chunks)

        outcome = run(session, request_inputs(start="2020-Foo-01"))

        assert outcome.reason == AbortReason.INVALID_DATE
        assert outcome.detail == "start"
        assert outcome.diagnostic_text.startswith("Cannot interpret date")

    def test_element_input_error(self, scripted_session, transcript, request_inputs):
        chunks = transcript("horizons_success.txt")[: ELEMENTS_RESPONSE + 1]
        chunks[ELEMENTS_RESPONSE] = (
            "EPOCH=2459000.5 EC=.1\n"
            " ERROR: missing required element QR or A\n"
            " Enter osculating elements (EPOCH, EC, QR, TP, OM, W, IN) : "
        )
        session = scripted_session(chunks)

        outcome = run(session, request_inputs(elements="EPOCH=2459000.5 EC=.1"))

        assert outcome.reason == AbortReason.SERVER_REPORTED_INPUT_ERROR
        assert outcome.diagnostic_text == "ERROR: missing required element QR or A"
        assert outcome.stage_name == "elements"

    def test_malformed_spk_id(self, scripted_session, transcript, request_inputs):
        chunks = transcript("horizons_success.txt")
        chunks[GENERATE_RESPONSE] = (
            "S\n"
            " Assigned SPK object ID: 10x3\n"
            " Enter your Internet e-mail address [?] : "
        )
        session = scripted_session(chunks)

        outcome = run(session, request_inputs())

        assert outcome.reason == AbortReason.MALFORMED_CAPTURE
        assert outcome.detail == "spk_id"
        assert "spk_id" not in outcome.context
        assert "local_filename" not in outcome.context

    def test_unreachable_server(self, scripted_session, request_inputs):
        session = scripted_session(
            ["telnet: could not resolve horizons.jpl.nasa.gov/6775: Name or service not known\n"]
        )

        outcome = run(session, request_inputs())

        assert outcome.reason == AbortReason.CONNECTION_ERROR
        assert outcome.stage_index == 0
