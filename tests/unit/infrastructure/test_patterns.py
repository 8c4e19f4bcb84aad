"""Tests for the media URL pattern matcher."""

from __future__ import annotations

from streamfinder.domain.entities import StreamKind
from streamfinder.infrastructure.extraction.patterns import (
    decode_base64,
    extract_candidates,
    find_nested_iframe,
    rank_candidates,
    select_best,
)

_HIDDEN_M3U8 = "https://cdn.example.com/hidden/master.m3u8"
_HIDDEN_B64 = "aHR0cHM6Ly9jZG4uZXhhbXBsZS5jb20vaGlkZGVuL21hc3Rlci5tM3U4"


class TestDecodeBase64:
    def test_standard(self) -> None:
        assert decode_base64(_HIDDEN_B64) == _HIDDEN_M3U8

    def test_missing_padding(self) -> None:
        # "https://cdn.example.com/a.m3u8?x=1" with "==" stripped
        encoded = "aHR0cHM6Ly9jZG4uZXhhbXBsZS5jb20vYS5tM3U4P3g9MQ"
        assert decode_base64(encoded) == "https://cdn.example.com/a.m3u8?x=1"

    def test_invalid(self) -> None:
        assert decode_base64("@@@@") is None

    def test_non_utf8(self) -> None:
        # 0xff 0xfe 0xfd
        assert decode_base64("//79") is None


class TestExtractCandidates:
    def test_empty_text(self) -> None:
        assert list(extract_candidates("")) == []

    def test_no_media(self) -> None:
        html = '<html><a href="https://example.com/page">x</a></html>'
        assert list(extract_candidates(html)) == []

    def test_player_setup(self) -> None:
        html = (
            'jwplayer("player").setup({'
            'file: "https://cdn.example.com/live/stream.m3u8", width: "100%"});'
        )
        assert list(extract_candidates(html)) == [
            ("https://cdn.example.com/live/stream.m3u8", StreamKind.HLS)
        ]

    def test_hls_js_load_source(self) -> None:
        html = "hls.loadSource('https://cdn.example.com/a/playlist.m3u8');"
        urls = [url for url, _ in extract_candidates(html)]
        assert urls == ["https://cdn.example.com/a/playlist.m3u8"]

    def test_source_tag_mp4(self) -> None:
        html = '<video><source src="https://cdn.example.com/vod/clip.mp4" type="video/mp4"></video>'
        assert list(extract_candidates(html)) == [
            ("https://cdn.example.com/vod/clip.mp4", StreamKind.MP4)
        ]

    def test_generic_scan_yields_unknown_kind(self) -> None:
        html = "var clip = 'https://cdn.example.com/vod/clip.webm';"
        assert list(extract_candidates(html)) == [
            ("https://cdn.example.com/vod/clip.webm", StreamKind.UNKNOWN)
        ]

    def test_escaped_json_kept_raw(self) -> None:
        html = '{"file":"https:\\/\\/cdn.example.com\\/live\\/a.m3u8"}'
        urls = [url for url, _ in extract_candidates(html)]
        assert urls == ["https:\\/\\/cdn.example.com\\/live\\/a.m3u8"]

    def test_base64_payload_decoded(self) -> None:
        html = f'var s = atob("{_HIDDEN_B64}");'
        assert list(extract_candidates(html)) == [(_HIDDEN_M3U8, StreamKind.HLS)]

    def test_base64_wrappers(self) -> None:
        for wrapper in ("decodeURIComponent(escape(atob", "base64_decode", "Base64.decode"):
            html = f"x = {wrapper}('{_HIDDEN_B64}')"
            assert (_HIDDEN_M3U8, StreamKind.HLS) in list(extract_candidates(html))

    def test_base64_without_media_ignored(self) -> None:
        html = 'atob("bm8gbWVkaWEgaGVyZSBhdCBhbGw=")'
        assert list(extract_candidates(html)) == []

    def test_base64_results_come_first(self) -> None:
        html = (
            'var a = "https://cdn.example.com/direct/one.m3u8";'
            f'var b = atob("{_HIDDEN_B64}");'
        )
        urls = [url for url, _ in extract_candidates(html)]
        assert urls[0] == _HIDDEN_M3U8
        assert "https://cdn.example.com/direct/one.m3u8" in urls

    def test_short_matches_ignored(self) -> None:
        assert list(extract_candidates('src="a.mp4"')) == []

    def test_each_url_once(self) -> None:
        html = 'source: "https://cdn.example.com/live/x.m3u8"'
        urls = [url for url, _ in extract_candidates(html)]
        assert urls == ["https://cdn.example.com/live/x.m3u8"]

    def test_restartable_and_idempotent(self) -> None:
        html = (
            '<source src="https://cdn.example.com/vod/clip.mp4">'
            'file: "https://cdn.example.com/live/x.m3u8"'
        )
        candidates = extract_candidates(html)
        first = list(candidates)
        assert first
        assert list(candidates) == first
        assert list(extract_candidates(html)) == first


class TestSelectBest:
    def test_empty(self) -> None:
        assert select_best([]) is None

    def test_hls_preferred_over_earlier_mp4(self) -> None:
        candidates = [
            ("https://cdn.test/a.mp4", StreamKind.MP4),
            ("https://cdn.test/b.m3u8", StreamKind.HLS),
        ]
        assert select_best(candidates) == ("https://cdn.test/b.m3u8", StreamKind.HLS)

    def test_mp4_preferred_over_unknown(self) -> None:
        candidates = [
            ("https://cdn.test/a.webm", StreamKind.UNKNOWN),
            ("https://cdn.test/b.mp4", StreamKind.MP4),
        ]
        assert select_best(candidates) == ("https://cdn.test/b.mp4", StreamKind.MP4)

    def test_first_wins_ties(self) -> None:
        candidates = [
            ("https://cdn.test/first.m3u8", StreamKind.HLS),
            ("https://cdn.test/second.m3u8", StreamKind.HLS),
        ]
        assert select_best(candidates)[0] == "https://cdn.test/first.m3u8"


class TestRankCandidates:
    def test_stable_by_kind(self) -> None:
        candidates = [
            ("https://cdn.test/1.mp4", StreamKind.MP4),
            ("https://cdn.test/2.m3u8", StreamKind.HLS),
            ("https://cdn.test/3.webm", StreamKind.UNKNOWN),
            ("https://cdn.test/4.m3u8", StreamKind.HLS),
        ]
        assert [url for url, _ in rank_candidates(candidates)] == [
            "https://cdn.test/2.m3u8",
            "https://cdn.test/4.m3u8",
            "https://cdn.test/1.mp4",
            "https://cdn.test/3.webm",
        ]


class TestFindNestedIframe:
    def test_found(self) -> None:
        html = '<div><iframe width="100%" src="/player/inner?id=1"></iframe></div>'
        assert find_nested_iframe(html) == "/player/inner?id=1"

    def test_first_only(self) -> None:
        html = '<iframe src="https://a.test/1"></iframe><iframe src="https://b.test/2"></iframe>'
        assert find_nested_iframe(html) == "https://a.test/1"

    def test_none(self) -> None:
        assert find_nested_iframe("<div>no frames</div>") is None
