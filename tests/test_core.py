#!/usr/bin/env python3
"""
Unit tests for VideoSummaryBot core modules.
Tests cover: URL parsing, error codes, captions parsing, subtitle store,
cancellation scopes, configuration, diagnostics, subprocess runner.
"""

import sys
import json
import tempfile
import time
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from summarybot.core.constants import ErrorCode, DEFAULT_TASK_INTERVAL_SEC
from summarybot.core.url_parse import (
    resolve_video_id, looks_like_video_link, build_watch_url,
)
from summarybot.core.error_codes import JobError
from summarybot.core.captions_parse import parse_srt_to_text, parse_srt_file
from summarybot.core.subtitle_store import SubtitleStore, choose_artifact
from summarybot.core.cancellation import CancelScope
from summarybot.core.config import AppConfig, ConfigError
from summarybot.core.diagnostics import (
    get_ytdlp_version, find_ytdlp, check_work_dir, get_diagnostics,
)
from summarybot.core.security_utils import SubprocessRunner


class TestURLParsing(unittest.TestCase):
    """Test YouTube URL parsing and validation."""

    def test_short_link(self):
        self.assertEqual(resolve_video_id("https://youtu.be/abc123"), "abc123")

    def test_watch_url(self):
        self.assertEqual(
            resolve_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_watch_url_with_params(self):
        self.assertEqual(
            resolve_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=120"),
            "dQw4w9WgXcQ",
        )

    def test_root_path_with_v(self):
        self.assertEqual(resolve_video_id("https://youtube.com/?v=xyz"), "xyz")

    def test_no_scheme(self):
        self.assertEqual(resolve_video_id("youtube.com/watch?v=abc"), "abc")
        self.assertEqual(resolve_video_id("  youtu.be/abc123  "), "abc123")

    def test_mobile_and_music_hosts(self):
        self.assertEqual(resolve_video_id("https://m.youtube.com/watch?v=m1"), "m1")
        self.assertEqual(resolve_video_id("https://music.youtube.com/watch?v=mu1"), "mu1")

    def test_host_case_insensitive(self):
        self.assertEqual(resolve_video_id("https://WWW.YouTube.com/watch?v=abc"), "abc")

    def test_shorts(self):
        self.assertEqual(resolve_video_id("https://www.youtube.com/shorts/sh0rt"), "sh0rt")

    def test_last_path_segment(self):
        self.assertEqual(resolve_video_id("https://www.youtube.com/embed/emb3d"), "emb3d")
        self.assertEqual(resolve_video_id("https://www.youtube.com/live/l1ve/"), "l1ve")

    def test_unsupported_host(self):
        with self.assertRaises(JobError) as ctx:
            resolve_video_id("https://vimeo.com/12345")
        self.assertEqual(ctx.exception.code, ErrorCode.UNSUPPORTED_HOST)

    def test_garbled_input(self):
        for url in ["not a link", "http://", "https://exa mple.com/x"]:
            with self.subTest(url=url):
                with self.assertRaises(JobError) as ctx:
                    resolve_video_id(url)
                self.assertEqual(ctx.exception.code, ErrorCode.INVALID_INPUT)

    def test_invalid_input(self):
        for url in ["", "   ", "https://www.youtube.com/watch",
                    "https://www.youtube.com/watch?v=", "https://youtu.be/",
                    "https://www.youtube.com/shorts/"]:
            with self.subTest(url=url):
                with self.assertRaises(JobError) as ctx:
                    resolve_video_id(url)
                self.assertEqual(ctx.exception.code, ErrorCode.INVALID_INPUT)

    def test_idempotent(self):
        url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        self.assertEqual(resolve_video_id(url), resolve_video_id(url))

    def test_looks_like_video_link(self):
        self.assertTrue(looks_like_video_link("check https://YOUTU.BE/abc"))
        self.assertTrue(looks_like_video_link("https://www.youtube.com/watch?v=a"))
        self.assertFalse(looks_like_video_link("not a link"))
        self.assertFalse(looks_like_video_link(""))

    def test_build_watch_url(self):
        self.assertEqual(build_watch_url("abc"), "https://www.youtube.com/watch?v=abc")


class TestErrorCodes(unittest.TestCase):
    """Test error code handling."""

    def test_retryable_errors(self):
        self.assertTrue(JobError(ErrorCode.RATE_LIMITED, "x").retryable)
        self.assertTrue(JobError(ErrorCode.NO_SUBTITLES, "x").retryable)

    def test_non_retryable_errors(self):
        for code in (ErrorCode.EXTRACTION_FAILED, ErrorCode.EMPTY_TRANSCRIPT,
                     ErrorCode.INVALID_INPUT, ErrorCode.SUMMARIZER_FAILED):
            with self.subTest(code=code):
                self.assertFalse(JobError(code, "x").retryable)

    def test_explicit_retryable_overrides_code(self):
        self.assertTrue(JobError(ErrorCode.SUMMARIZER_FAILED, "timeout", retryable=True).retryable)

    def test_with_context(self):
        err = JobError(ErrorCode.RATE_LIMITED, "slow down")
        wrapped = err.with_context("fetch transcript")
        self.assertEqual(wrapped.code, ErrorCode.RATE_LIMITED)
        self.assertEqual(wrapped.message, "fetch transcript: slow down")
        self.assertTrue(wrapped.retryable)
        self.assertIn(ErrorCode.RATE_LIMITED, str(wrapped))


class TestCaptionsParsing(unittest.TestCase):
    """Test SRT caption flattening."""

    def test_parse_srt_basic(self):
        srt = """1
00:00:00,000 --> 00:00:05,000
Hello, welcome to this video.

2
00:00:05,000 --> 00:00:10,000
Today we'll be talking
about Python.
"""
        self.assertEqual(
            parse_srt_to_text(srt),
            "Hello, welcome to this video. Today we'll be talking about Python.",
        )

    def test_parse_srt_crlf_and_bom(self):
        srt = "\ufeff1\r\n00:00:00,000 --> 00:00:01,000\r\n  Hi there  \r\n\r\n"
        self.assertEqual(parse_srt_to_text(srt), "Hi there")

    def test_parse_srt_empty(self):
        self.assertEqual(parse_srt_to_text(""), "")
        self.assertEqual(parse_srt_to_text("1\n00:00:00,000 --> 00:00:01,000\n\n"), "")

    def test_parse_srt_non_ascii_digits_kept(self):
        srt = "1\n00:00:00,000 --> 00:00:01,000\n\u00b2\n\u0663\n"
        self.assertEqual(parse_srt_to_text(srt), "\u00b2 \u0663")

    def test_parse_srt_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "v.en.srt"
            path.write_text("1\n00:00:00,000 --> 00:00:01,000\nfile text\n", encoding="utf-8")
            self.assertEqual(parse_srt_file(path), "file text")


SRT_RU = "1\n00:00:00,000 --> 00:00:01,000\nпривет\n"
SRT_EN = "1\n00:00:00,000 --> 00:00:01,000\nhello\n"
SRT_DE = "1\n00:00:00,000 --> 00:00:01,000\nhallo\n"


class TestSubtitleStore(unittest.TestCase):
    """Test on-disk subtitle lookup and cleanup."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.store = SubtitleStore(self.dir, primary_language="ru", secondary_language="en")

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, name, content):
        (self.dir / name).write_text(content, encoding="utf-8")

    def test_not_found(self):
        self.assertIsNone(self.store.find_existing("vid"))
        self.assertEqual(self.store.artifact_state("vid"), {})

    def test_prefers_primary(self):
        self._write("vid.en.srt", SRT_EN)
        self._write("vid.ru.srt", SRT_RU)
        self.assertEqual(self.store.find_existing("vid"), "привет")

    def test_regional_variant_counts_as_primary(self):
        self._write("vid.en.srt", SRT_EN)
        self._write("vid.ru-RU.srt", SRT_RU)
        self.assertEqual(self.store.find_existing("vid"), "привет")

    def test_falls_back_to_secondary(self):
        self._write("vid.de.srt", SRT_DE)
        self._write("vid.en.srt", SRT_EN)
        self.assertEqual(self.store.find_existing("vid"), "hello")

    def test_falls_back_to_lexicographic_first(self):
        self._write("vid.fr.srt", "1\n00:00:00,000 --> 00:00:01,000\nbonjour\n")
        self._write("vid.de.srt", SRT_DE)
        self.assertEqual(self.store.find_existing("vid"), "hallo")

    def test_empty_file_is_not_found(self):
        self._write("vid.ru.srt", "1\n00:00:00,000 --> 00:00:01,000\n\n")
        self.assertIsNone(self.store.find_existing("vid"))
        self.assertEqual(list(self.store.artifact_state("vid")), ["vid.ru.srt"])

    def test_empty_preferred_file_hides_other_languages(self):
        self._write("vid.ru.srt", "1\n00:00:00,000 --> 00:00:01,000\n\n")
        self._write("vid.en.srt", SRT_EN)
        self.assertIsNone(self.store.find_existing("vid"))

    def test_unreadable_preferred_file_is_not_found(self):
        (self.dir / "vid.ru.srt").mkdir()   # read_text() fails on a directory
        self._write("vid.en.srt", SRT_EN)
        self.assertIsNone(self.store.find_existing("vid"))

    def test_artifact_state_tracks_rewrites(self):
        self._write("vid.ru.srt", "")
        before = self.store.artifact_state("vid")
        self._write("vid.ru.srt", SRT_RU)
        self.assertNotEqual(self.store.artifact_state("vid"), before)

    def test_ignores_other_videos(self):
        self._write("vid2.ru.srt", SRT_RU)
        self._write("vidx.ru.srt", SRT_RU)
        self.assertIsNone(self.store.find_existing("vid"))

    def test_cleanup_removes_all_languages(self):
        self._write("vid.ru.srt", SRT_RU)
        self._write("vid.en.srt", SRT_EN)
        self._write("vid.en.srt.part", "partial")
        self._write("other.ru.srt", SRT_RU)

        removed = self.store.cleanup("vid")

        self.assertEqual(len(removed), 3)
        self.assertEqual(self.store.artifacts("vid"), [])
        self.assertEqual(sorted(p.name for p in self.dir.iterdir()), ["other.ru.srt"])

    def test_cleanup_nothing_to_remove(self):
        self.assertEqual(self.store.cleanup("vid"), [])

    def test_cleanup_failure_is_not_raised(self):
        self._write("vid.en.srt", SRT_EN)
        (self.dir / "vid.ru.srt").mkdir()   # unlink() fails on a directory
        removed = self.store.cleanup("vid")
        self.assertEqual([p.name for p in removed], ["vid.en.srt"])

    def test_choose_artifact(self):
        paths = [Path("v.de.srt"), Path("v.en-GB.srt"), Path("v.ru.srt")]
        self.assertEqual(choose_artifact(paths, "ru", "en").name, "v.ru.srt")
        self.assertEqual(choose_artifact(paths[:2], "ru", "en").name, "v.en-GB.srt")
        self.assertIsNone(choose_artifact([], "ru", "en"))


class TestCancelScope(unittest.TestCase):
    """Test cancellation propagation and deadlines."""

    def test_cancel(self):
        scope = CancelScope()
        self.assertFalse(scope.cancelled)
        scope.cancel()
        self.assertTrue(scope.cancelled)
        self.assertFalse(scope.timed_out)

    def test_parent_cancels_child(self):
        parent = CancelScope()
        child = parent.child(timeout=60)
        parent.cancel()
        self.assertTrue(child.cancelled)

    def test_child_does_not_cancel_parent(self):
        parent = CancelScope()
        child = parent.child()
        child.cancel()
        self.assertFalse(parent.cancelled)

    def test_child_of_cancelled_parent(self):
        parent = CancelScope()
        parent.cancel()
        self.assertTrue(parent.child().cancelled)

    def test_timeout(self):
        scope = CancelScope(timeout=0.05)
        self.assertTrue(scope.wait(5))
        self.assertTrue(scope.timed_out)

    def test_wait_returns_false_when_not_cancelled(self):
        self.assertFalse(CancelScope().wait(0.01))

    def test_wait_wakes_on_parent_cancel(self):
        import threading
        parent = CancelScope()
        child = parent.child()
        threading.Timer(0.05, parent.cancel).start()
        start = time.monotonic()
        self.assertTrue(child.wait(5))
        self.assertLess(time.monotonic() - start, 2)

    def test_remaining(self):
        self.assertIsNone(CancelScope().remaining())
        parent = CancelScope(timeout=10)
        child = parent.child(timeout=100)
        self.assertLessEqual(child.remaining(), 10)

    def test_close_detaches(self):
        parent = CancelScope()
        with parent.child() as child:
            pass
        parent.cancel()
        self.assertFalse(child._event.is_set())


class TestConfig(unittest.TestCase):
    """Test configuration loading."""

    def test_defaults(self):
        config = AppConfig(environ={})
        self.assertEqual(config.get('openai_model'), "gpt-4o-mini")
        self.assertEqual(config.task_interval_sec, DEFAULT_TASK_INTERVAL_SEC)
        self.assertEqual(config.get('primary_language'), "ru")
        self.assertTrue(config.is_development)
        self.assertIsNone(config.cookies_path)

    def test_env_overrides(self):
        config = AppConfig(environ={
            "TELEGRAM_BOT_TOKEN": " tok ",
            "OPENAI_API_KEY": "key",
            "OPENAI_MODEL": "gpt-4o",
            "TASK_INTERVAL_SECONDS": "15",
            "APP_ENV": "production",
            "PRIMARY_SUB_LANG": "DE",
        })
        self.assertEqual(config.telegram_token, "tok")
        self.assertEqual(config.get('openai_model'), "gpt-4o")
        self.assertEqual(config.task_interval_sec, 15)
        self.assertFalse(config.is_development)
        self.assertEqual(config.get('primary_language'), "de")
        config.require()

    def test_invalid_interval_uses_default(self):
        for value in ("abc", "0", "-5"):
            with self.subTest(value=value):
                config = AppConfig(environ={"TASK_INTERVAL_SECONDS": value})
                self.assertEqual(config.task_interval_sec, DEFAULT_TASK_INTERVAL_SEC)

    def test_require_missing(self):
        config = AppConfig(environ={"TELEGRAM_BOT_TOKEN": "tok"})
        with self.assertRaises(ConfigError) as ctx:
            config.require()
        self.assertIn("OPENAI_API_KEY", str(ctx.exception))

    def test_json_file_then_env(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps({"openai_model": "from-file", "task_interval_sec": 7}))
            config = AppConfig(config_path=path, environ={"OPENAI_MODEL": "from-env"})
            self.assertEqual(config.get('openai_model'), "from-env")
            self.assertEqual(config.task_interval_sec, 7)

    def test_broken_json_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{not json")
            config = AppConfig(config_path=path, environ={})
            self.assertEqual(config.get('openai_model'), "gpt-4o-mini")


class TestDiagnostics(unittest.TestCase):
    """Test tool detection."""

    def test_missing_ytdlp(self):
        self.assertEqual(get_ytdlp_version("/nonexistent/yt-dlp-missing"), "Not installed")
        self.assertIsNone(find_ytdlp("/nonexistent/yt-dlp-missing"))

    def test_check_work_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            info = check_work_dir(Path(tmpdir))
            self.assertTrue(info["exists"])
            self.assertTrue(info["writable"])
        self.assertFalse(check_work_dir(Path("/nonexistent/dir"))["exists"])

    def test_get_diagnostics(self):
        info = get_diagnostics("/nonexistent/yt-dlp-missing", Path("/nonexistent/dir"))
        self.assertIsNone(info["ytdlp_path"])
        self.assertEqual(info["ytdlp_version"], "Not installed")
        self.assertFalse(info["work_dir"]["writable"])


class TestSubprocessRunner(unittest.TestCase):
    """Test the cancellation-aware subprocess runner."""

    def test_rejects_string_args(self):
        with self.assertRaises(TypeError):
            SubprocessRunner().run("echo hi", CancelScope())

    def test_merges_output(self):
        script = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"
        result = SubprocessRunner().run([sys.executable, "-c", script], CancelScope())
        self.assertEqual(result.returncode, 3)
        self.assertFalse(result.ok)
        self.assertIn("out", result.output)
        self.assertIn("err", result.output)

    def test_killed_on_cancel(self):
        scope = CancelScope(timeout=0.3)
        start = time.monotonic()
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import time; time.sleep(30)"], scope)
        self.assertLess(time.monotonic() - start, 10)
        self.assertFalse(result.ok)
        self.assertTrue(scope.timed_out)


if __name__ == "__main__":
    unittest.main()
