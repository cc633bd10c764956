"""FFmpeg-based assembly of narrated vertical videos.

A background clip (static mode) or a sequence of per-segment clips
(dynamic mode) is scaled to cover the target frame, center-cropped, cut to
the narration length, watermarked and optionally captioned. The narration
track is muxed in unmodified.

All intermediate files live in a per-run temp directory that is removed on
every exit path.
"""

import asyncio
import json
import logging
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from models.media import MediaItem
from models.segment import ContentSegment, SubtitleCue
from models.video import VideoResult
from pipeline.errors import AssemblyError
from pipeline.subtitle_builder import SubtitleBuilder

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1080
DEFAULT_HEIGHT = 1920
DEFAULT_FPS = 30

VIDEO_BITRATE = "2M"
ENCODE_PRESET = "fast"

# libass style applied to burned-in captions
SUBTITLE_STYLE = (
    "FontName=Inter,FontSize=16,PrimaryColour=&Hffffff,OutlineColour=&H000000,"
    "Outline=1,Bold=0,MarginV=100,Alignment=2"
)

DURATION_TOLERANCE = 0.5


class FFmpegUnavailableError(AssemblyError):
    """The ffmpeg or ffprobe binary could not be started."""


def _run_tool(cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
    """Run an FFmpeg tool, mapping launch failures and timeouts to AssemblyError."""
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise FFmpegUnavailableError(f"{cmd[0]} is not installed or not on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise AssemblyError(f"{cmd[0]} timed out after {timeout:.0f}s") from e
    except OSError as e:
        raise FFmpegUnavailableError(f"Could not start {cmd[0]}: {e}") from e


def _escape_filter_path(path: Path) -> str:
    return str(path).replace("\\", "/").replace(":", "\\:")


def _escape_drawtext(text: str) -> str:
    return text.replace("\\", "").replace("'", "").replace(":", "\\:").replace("%", "\\%")


class VideoAssembler:
    """Assembles the final video from background media and narration."""

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        watermark_text: str = "",
        subtitle_builder: Optional[SubtitleBuilder] = None,
        download_timeout: float = 60.0,
    ):
        self.output_dir = Path(output_dir or "videos")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.width = width
        self.height = height
        self.watermark_text = watermark_text
        self.subtitle_builder = subtitle_builder or SubtitleBuilder()
        self.download_timeout = download_timeout

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    async def assemble(
        self,
        background: MediaItem,
        audio_path: str,
        audio_duration: float,
        subtitle_cues: Optional[list[SubtitleCue]] = None,
        segments: Optional[list[ContentSegment]] = None,
        output_name: Optional[str] = None,
    ) -> VideoResult:
        """Render the final video.

        Args:
            background: Baseline background clip; the only clip in static mode
                and the fallback for failed segments in dynamic mode
            audio_path: Narration audio file
            audio_duration: Narration length in seconds; the video is cut to it
            subtitle_cues: Captions to burn in (optional)
            segments: Planned segments with resolved media (dynamic mode)
            output_name: File name for the result inside ``output_dir``

        Returns:
            VideoResult measured from the produced file

        Raises:
            AssemblyError: If any FFmpeg step fails or the output does not
                match the requested resolution
        """
        if audio_duration <= 0:
            raise AssemblyError(f"Invalid narration duration: {audio_duration}")
        if not Path(audio_path).exists():
            raise AssemblyError(f"Narration audio not found: {audio_path}")

        output_path = self.output_dir / (output_name or f"video_{uuid.uuid4().hex[:12]}.mp4")
        tmp_dir = Path(tempfile.mkdtemp(prefix="newstok_assemble_"))
        mode = "dynamic" if segments else "static"
        logger.info(
            f"Assembling {mode} video: {self.resolution}, {audio_duration:.1f}s, "
            f"{len(subtitle_cues or [])} cues"
        )

        try:
            try:
                baseline = await self._download(background, tmp_dir / "background")
            except (httpx.HTTPError, OSError) as e:
                raise AssemblyError(f"Failed to fetch background media: {e}") from e

            if segments:
                visual = await self._build_dynamic_track(
                    segments, baseline, background.is_video, tmp_dir
                )
                visual_is_image = False
            else:
                visual = baseline
                visual_is_image = not background.is_video

            subtitle_path = None
            if subtitle_cues:
                subtitle_path = self.subtitle_builder.save(subtitle_cues, tmp_dir / "subtitles.srt")

            await asyncio.to_thread(
                self._render_final,
                visual,
                visual_is_image,
                Path(audio_path),
                audio_duration,
                subtitle_path,
                output_path,
            )

            if not output_path.exists():
                raise AssemblyError(f"FFmpeg did not produce output file: {output_path}")

            width, height, duration = await asyncio.to_thread(self._read_metadata, output_path)
            if (width, height) != (self.width, self.height):
                raise AssemblyError(
                    f"Output resolution {width}x{height} does not match requested {self.resolution}"
                )
            if abs(duration - audio_duration) > DURATION_TOLERANCE:
                logger.warning(
                    f"Output duration {duration:.2f}s differs from narration {audio_duration:.2f}s"
                )

            result = VideoResult(
                video_path=str(output_path),
                duration=duration,
                size=output_path.stat().st_size,
                resolution=f"{width}x{height}",
                has_subtitles=subtitle_path is not None,
            )
            logger.info(f"Video assembled: {output_path} ({result.size_mb:.1f} MB)")
            return result

        except Exception:
            output_path.unlink(missing_ok=True)
            raise

        finally:
            try:
                shutil.rmtree(tmp_dir, ignore_errors=True)
                logger.debug(f"Cleaned up temp dir: {tmp_dir}")
            except Exception as e:
                logger.warning(f"Failed to clean up temp dir: {e}")

    # ------------------------------------------------------------------
    # Media download
    # ------------------------------------------------------------------

    async def _download(self, item: MediaItem, dest_stem: Path) -> Path:
        """Fetch a media item into the work directory.

        http(s) URLs are streamed; ``file://`` URLs and plain paths are copied.
        """
        parsed = urlparse(item.url)
        suffix = Path(unquote(parsed.path)).suffix or (".mp4" if item.is_video else ".jpg")
        dest = dest_stem.with_suffix(suffix.lower())

        if parsed.scheme in ("http", "https"):
            async with httpx.AsyncClient(
                timeout=self.download_timeout, follow_redirects=True
            ) as client:
                async with client.stream("GET", item.url) as response:
                    response.raise_for_status()
                    with open(dest, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
        else:
            source = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(item.url)
            if not source.is_file():
                raise FileNotFoundError(f"Media file not found: {source}")
            await asyncio.to_thread(shutil.copyfile, source, dest)

        if dest.stat().st_size == 0:
            raise OSError(f"Downloaded media is empty: {item.url}")

        logger.debug(f"Fetched media {item.id} -> {dest.name}")
        return dest

    # ------------------------------------------------------------------
    # Dynamic mode
    # ------------------------------------------------------------------

    async def _build_dynamic_track(
        self,
        segments: list[ContentSegment],
        baseline: Path,
        baseline_is_video: bool,
        tmp_dir: Path,
    ) -> Path:
        """Normalize one clip per segment and concatenate them in order.

        A segment whose clip cannot be fetched or decoded reuses the previous
        successful clip, else the baseline background.
        """
        normalized: list[Path] = []
        previous: Optional[tuple[Path, bool]] = None

        for i, segment in enumerate(segments):
            out = tmp_dir / f"segment_{i:03d}.mp4"
            source: Optional[tuple[Path, bool]] = None

            if segment.media is not None:
                try:
                    fetched = await self._download(segment.media, tmp_dir / f"source_{i:03d}")
                    source = (fetched, segment.media.is_video)
                    await asyncio.to_thread(
                        self._normalize_clip, fetched, out, segment.duration, not segment.media.is_video
                    )
                except FFmpegUnavailableError:
                    raise
                except (httpx.HTTPError, OSError, AssemblyError) as e:
                    logger.warning(
                        f"Segment {i + 1} media failed for {segment.search_query!r}: {e}"
                    )
                    source = None

            if source is None:
                fallback_path, fallback_is_video = previous or (baseline, baseline_is_video)
                await asyncio.to_thread(
                    self._normalize_clip, fallback_path, out, segment.duration, not fallback_is_video
                )
            else:
                previous = source

            normalized.append(out)
            logger.debug(f"Segment {i + 1}/{len(segments)} ready ({segment.duration:.1f}s)")

        track = tmp_dir / "segments.mp4"
        await asyncio.to_thread(self._concatenate_clips, normalized, track)
        return track

    def _normalize_clip(
        self, input_path: Path, output_path: Path, duration: float, is_image: bool
    ) -> None:
        """Scale-to-cover, center-crop and cut one clip to ``duration``."""
        loop_args = ["-loop", "1"] if is_image else ["-stream_loop", "-1"]
        cmd = [
            "ffmpeg", "-y",
            *loop_args,
            "-i", str(input_path),
            "-vf", f"{self._cover_filter()},fps={DEFAULT_FPS}",
            "-t", f"{duration:.3f}",
            "-c:v", "libx264",
            "-preset", ENCODE_PRESET,
            "-pix_fmt", "yuv420p",
            "-an",
            str(output_path),
        ]
        self._run_ffmpeg(cmd, f"normalize {input_path.name} ({duration:.1f}s)")

    def _concatenate_clips(self, clips: list[Path], output_path: Path) -> None:
        """Concatenate normalized clips with the FFmpeg concat demuxer."""
        if not clips:
            raise AssemblyError("No segment clips to concatenate")

        if len(clips) == 1:
            shutil.copy2(str(clips[0]), str(output_path))
            return

        concat_file = output_path.parent / "concat.txt"
        lines = [f"file '{clip}'" for clip in clips]
        concat_file.write_text("\n".join(lines))

        cmd = [
            "ffmpeg", "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(concat_file),
            "-c", "copy",
            str(output_path),
        ]
        self._run_ffmpeg(cmd, f"concatenate {len(clips)} segments")

    # ------------------------------------------------------------------
    # Final render
    # ------------------------------------------------------------------

    def _cover_filter(self) -> str:
        w, h = self.width, self.height
        return f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h},setsar=1"

    def _build_video_filter(self, subtitle_path: Optional[Path]) -> str:
        filters = [self._cover_filter()]
        if self.watermark_text:
            filters.append(
                f"drawtext=text='{_escape_drawtext(self.watermark_text)}':"
                "fontcolor=white@0.6:fontsize=h/40:x=w-tw-40:y=60"
            )
        if subtitle_path is not None:
            filters.append(
                f"subtitles='{_escape_filter_path(subtitle_path)}':force_style='{SUBTITLE_STYLE}'"
            )
        return ",".join(filters)

    def _build_render_command(
        self,
        visual: Path,
        visual_is_image: bool,
        audio_path: Path,
        audio_duration: float,
        subtitle_path: Optional[Path],
        output_path: Path,
    ) -> list[str]:
        loop_args = ["-loop", "1"] if visual_is_image else ["-stream_loop", "-1"]
        return [
            "ffmpeg", "-y",
            *loop_args,
            "-i", str(visual),
            "-i", str(audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-vf", self._build_video_filter(subtitle_path),
            "-t", f"{audio_duration:.3f}",
            "-c:v", "libx264",
            "-preset", ENCODE_PRESET,
            "-b:v", VIDEO_BITRATE,
            "-pix_fmt", "yuv420p",
            "-c:a", "copy",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def _render_final(
        self,
        visual: Path,
        visual_is_image: bool,
        audio_path: Path,
        audio_duration: float,
        subtitle_path: Optional[Path],
        output_path: Path,
    ) -> None:
        cmd = self._build_render_command(
            visual, visual_is_image, audio_path, audio_duration, subtitle_path, output_path
        )
        self._run_ffmpeg(cmd, f"render {output_path.name}")

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def _read_metadata(self, video_path: Path) -> tuple[int, int, float]:
        """Read width, height and duration back from a produced file.

        Raises:
            AssemblyError: If ffprobe fails or reports no video stream
        """
        cmd = [
            "ffprobe",
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(video_path),
        ]
        result = _run_tool(cmd, timeout=30)
        if result.returncode != 0:
            raise AssemblyError(f"ffprobe failed for {video_path.name}: {result.stderr[:300]}")

        try:
            data = json.loads(result.stdout)
            stream = next(s for s in data.get("streams", []) if s.get("codec_type") == "video")
            duration = float(data["format"]["duration"])
            return int(stream["width"]), int(stream["height"]), duration
        except (StopIteration, KeyError, ValueError) as e:
            raise AssemblyError(f"Could not read video metadata for {video_path.name}: {e}") from e

    def _run_ffmpeg(self, cmd: list[str], description: str = "") -> None:
        """Run FFmpeg command with error handling.

        Raises:
            AssemblyError: If FFmpeg returns a non-zero exit code
        """
        logger.info(f"FFmpeg: {description}")
        logger.debug(f"Command: {' '.join(cmd)}")

        result = _run_tool(cmd, timeout=600)

        if result.returncode != 0:
            logger.error(f"FFmpeg stderr: {result.stderr[-1000:]}")
            raise AssemblyError(f"FFmpeg failed ({description}): {result.stderr[:500]}")
