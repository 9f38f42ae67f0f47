"""Recognition transport backed by the OpenAI Realtime transcription API.

Plays the part of the browser's speech-recognition object for server
side sessions: PCM16 audio (24 kHz mono) is read from an
``asyncio.Queue`` and relayed over a websocket, the buffer is committed
on a timer (server VAD is off), and transcripts come back as final
``RecognitionResult``s.  Incremental deltas are reported as interim
results.

Each ``start()`` opens a fresh connection; ``abort()`` drops it at once
and detaches it, which is how the voice sessions flush a stale
transcript.  The audio
queue outlives restarts, so no audio is lost between connections.
Putting ``None`` on the queue ends the audio stream.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Callable, Optional

import websockets

from wordmastery.config import settings
from wordmastery.services.voice_session import Alternative, RecognitionResult

logger = logging.getLogger(__name__)

# Context-only prompt: passing the target words makes the model hallucinate them.
CONTEXT_PROMPT = (
    "A young child is reading single English words aloud, "
    "slowly, one word at a time."
)


class RealtimeTranscriptionTransport:
    def __init__(
        self,
        audio_queue: "asyncio.Queue[Optional[bytes]]",
        api_key: str = settings.openai_api_key,
        url: str = settings.openai_realtime_url,
        model: str = settings.openai_realtime_model,
        commit_interval: float = settings.realtime_commit_interval,
        language: str = "en",
    ):
        self.audio_queue = audio_queue
        self.api_key = api_key
        self.url = url
        self.model = model
        self.commit_interval = commit_interval
        self.language = language

        self.on_result: Optional[Callable[[RecognitionResult], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._generation = 0
        self._aborted = False
        self._partials: dict[str, str] = {}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ---- Transport protocol ----

    def start(self) -> None:
        if self.running:
            raise RuntimeError("Recognition already started")
        loop = asyncio.get_running_loop()
        self._generation += 1
        self._aborted = False
        self._partials = {}
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(self._run(self._generation))

    def stop(self) -> None:
        """Finish gracefully: final commit, then close."""
        if self._stop_event is not None:
            self._stop_event.set()

    def abort(self) -> None:
        """Drop the connection immediately without waiting for transcripts.

        The cancelled connection is detached: ``start()`` may be called
        again while its websocket is still closing, and once a newer
        connection exists the old one reports nothing further.
        """
        if self.running:
            self._aborted = True
            self._task.cancel()
            self._task = None

    # ---- Connection ----

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int) -> None:
        ws = None
        try:
            try:
                ws = await websockets.connect(
                    self.url,
                    additional_headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "OpenAI-Beta": "realtime=v1",
                    },
                )
            except Exception:
                logger.exception("OpenAI Realtime API connection failed")
                if self._is_current(generation):
                    self._emit_error("network")
                return

            await ws.send(json.dumps(self._session_config()))
            logger.debug("Realtime transcription session configured (model=%s)", self.model)

            await asyncio.gather(
                self._pump_audio(ws),
                self._periodic_commit(ws),
                self._read_events(ws, generation),
            )
        except asyncio.CancelledError:
            if self._aborted and self._is_current(generation):
                self._emit_error("aborted")
        except Exception as e:
            logger.error("Realtime transport failed: %s", e)
            if self._is_current(generation):
                self._emit_error("network")
        finally:
            if ws is not None:
                try:
                    await ws.close()
                except Exception:
                    pass
            if self._is_current(generation):
                self._emit_end()
            else:
                logger.debug("Superseded realtime connection closed")

    def _session_config(self) -> dict:
        return {
            "type": "transcription_session.update",
            "session": {
                "input_audio_format": "pcm16",
                "input_audio_transcription": {
                    "model": self.model,
                    "language": self.language,
                    "prompt": CONTEXT_PROMPT,
                },
                "turn_detection": None,  # commits are manual
                "input_audio_noise_reduction": {"type": "near_field"},
            },
        }

    async def _pump_audio(self, ws) -> None:
        """Relay queued PCM16 chunks until stopped or the audio ends."""
        while not self._stop_event.is_set():
            try:
                chunk = await asyncio.wait_for(self.audio_queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if chunk is None:
                break
            if not chunk:
                continue
            await ws.send(json.dumps({
                "type": "input_audio_buffer.append",
                "audio": base64.b64encode(chunk).decode("ascii"),
            }))

        # Final commit so the tail of the utterance is transcribed, then give
        # the last transcript one commit interval to arrive before closing.
        self._stop_event.set()
        try:
            await ws.send(json.dumps({"type": "input_audio_buffer.commit"}))
            await asyncio.sleep(self.commit_interval)
        finally:
            await ws.close()

    async def _periodic_commit(self, ws) -> None:
        while not self._stop_event.is_set():
            await asyncio.sleep(self.commit_interval)
            if self._stop_event.is_set():
                break
            await ws.send(json.dumps({"type": "input_audio_buffer.commit"}))

    async def _read_events(self, ws, generation: int) -> None:
        """Dispatch server events until the connection closes."""
        async for raw_msg in ws:
            if not self._is_current(generation):
                break
            msg = json.loads(raw_msg)
            self._handle_event(msg.get("type", ""), msg)

    def _handle_event(self, event_type: str, msg: dict) -> None:
        item_id = msg.get("item_id", "")

        if event_type == "conversation.item.input_audio_transcription.delta":
            text = self._partials.get(item_id, "") + msg.get("delta", "")
            self._partials[item_id] = text
            self._emit_result(text, is_final=False)

        elif event_type == "conversation.item.input_audio_transcription.completed":
            self._partials.pop(item_id, None)
            transcript = msg.get("transcript", "").strip()
            if transcript:
                self._emit_result(transcript, is_final=True)
            else:
                self._emit_error("no-speech")

        elif event_type == "error":
            error_msg = msg.get("error", {}).get("message", "Unknown error")
            # Committing an empty buffer is expected during silence.
            if "buffer too small" in error_msg:
                self._emit_error("no-speech")
            else:
                logger.warning("OpenAI Realtime error: %s", error_msg)
                self._emit_error("service")

    # ---- Callbacks ----

    def _emit_result(self, transcript: str, is_final: bool) -> None:
        if self.on_result:
            self.on_result(
                RecognitionResult(alternatives=[Alternative(transcript)], is_final=is_final)
            )

    def _emit_error(self, kind: str) -> None:
        if self.on_error:
            self.on_error(kind)

    def _emit_end(self) -> None:
        if self.on_end:
            self.on_end()
