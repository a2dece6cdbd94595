"""Deterministic ad compositing through headless Chrome.

The page is assembled as HTML, captured by a selenium-driven Chrome session
at the exact target viewport, and normalised into a JPEG with Pillow.
"""

from __future__ import annotations

import base64
import html
import logging
import re
from contextlib import contextmanager
from io import BytesIO
from typing import Any, Callable, Iterator, Optional
from urllib.parse import quote

from PIL import Image, UnidentifiedImageError
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.support.ui import WebDriverWait

from adcreative.config import RendererConfig
from adcreative.errors import RenderError
from adcreative.models import DEFAULT_DIMENSIONS, AdAssets, AdTemplate, FontSpec, GeneratedAd

logger = logging.getLogger(__name__)

_DIMENSIONS_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
_MAX_SIDE = 4096

_READY_SCRIPT = (
    "return document.readyState === 'complete' && "
    "Array.from(document.images).every(function (img) { return img.complete; });"
)

DEFAULT_FONTS = {
    "hook": FontSpec(size=20, weight="600"),
    "headline": FontSpec(size=48, weight="bold"),
    "body": FontSpec(size=24, weight="normal"),
    "cta": FontSpec(size=18, weight="bold"),
}

DriverFactory = Callable[[int, int], Any]


def _default_dimensions() -> tuple[int, int]:
    width, height = DEFAULT_DIMENSIONS.split("x")
    return int(width), int(height)


def parse_dimensions(value: Optional[str], default: Optional[str] = None) -> tuple[int, int]:
    """Parse ``"<w>x<h>"``; malformed or missing values fall back to the default."""

    fallback = default or DEFAULT_DIMENSIONS
    match = _DIMENSIONS_RE.match(value or "")
    if match:
        width, height = int(match.group(1)), int(match.group(2))
        if 0 < width <= _MAX_SIDE and 0 < height <= _MAX_SIDE:
            return width, height

    if value:
        logger.warning(
            "Invalid ad dimensions %r, falling back to %s", value, fallback
        )
    fallback_match = _DIMENSIONS_RE.match(fallback)
    if fallback_match:
        return int(fallback_match.group(1)), int(fallback_match.group(2))
    return _default_dimensions()


def _percent(value: Optional[str]) -> Optional[float]:
    match = re.match(r"^\s*(\d+(?:\.\d+)?)\s*%\s*$", value or "")
    if not match:
        return None
    share = float(match.group(1)) / 100
    return share if 0 < share <= 1 else None


def canvas_dimensions(
    requested: Optional[str], template: Optional[AdTemplate], default: str
) -> str:
    """Pick the render canvas: explicit request, then the template's first image zone.

    A zone that covers only part of the canvas (``width="60%"``) is scaled back
    up to the full canvas size.
    """

    if requested and requested.strip():
        return requested.strip()
    zones = template.layout_json.image_zones if template is not None else []
    if not zones or not zones[0].dimensions:
        return default

    zone = zones[0]
    match = _DIMENSIONS_RE.match(zone.dimensions)
    if not match:
        return zone.dimensions
    width, height = int(match.group(1)), int(match.group(2))
    width_share, height_share = _percent(zone.width), _percent(zone.height)
    if width_share:
        width = round(width / width_share)
    if height_share:
        height = round(height / height_share)
    return f"{width}x{height}"


def _font_css(role: str, template: Optional[AdTemplate]) -> str:
    spec = DEFAULT_FONTS[role]
    if template is not None:
        spec = template.style_rules_json.font_hierarchy.get(role, spec)
    if spec.size <= 0:
        spec = DEFAULT_FONTS[role]
    weight = "600" if spec.weight == "semibold" else spec.weight
    family = html.escape(spec.family, quote=True)
    return f"font-size: {spec.size}px; font-weight: {weight}; font-family: {family};"


def build_html(assets: AdAssets, template: Optional[AdTemplate] = None) -> str:
    esc = html.escape
    hook = f'<div class="hook">{esc(assets.hook)}</div>' if assets.hook else ""
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8" />
<style>
  html, body {{ margin: 0; padding: 0; overflow: hidden; }}
  .container {{ position: relative; width: 100vw; height: 100vh; overflow: hidden; background: #f0f0f0; }}
  .bg-image {{ width: 100%; height: 100%; object-fit: cover; display: block; }}
  .overlay {{
    position: absolute; bottom: 0; left: 0; right: 0;
    background: linear-gradient(transparent, rgba(0,0,0,0.8));
    padding: 40px; color: white;
    display: flex; flex-direction: column; gap: 16px;
  }}
  .hook {{ {_font_css("hook", template)} text-transform: uppercase; letter-spacing: 0.05em; }}
  h1 {{ margin: 0; line-height: 1.1; {_font_css("headline", template)} }}
  p {{ margin: 0; opacity: 0.9; {_font_css("body", template)} }}
  .cta {{
    background: white; color: black; padding: 12px 24px; width: fit-content;
    border-radius: 4px; margin-top: 16px; {_font_css("cta", template)}
  }}
</style>
</head>
<body>
  <div class="container">
    <img src="{esc(assets.image_url, quote=True)}" class="bg-image" />
    <div class="overlay">
      {hook}
      <h1>{esc(assets.headline)}</h1>
      <p>{esc(assets.body_copy)}</p>
      <div class="cta">{esc(assets.cta)}</div>
    </div>
  </div>
</body>
</html>
"""


def to_data_url(data: bytes, content_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def chrome_driver_factory(config: RendererConfig) -> DriverFactory:
    """Return a factory that launches headless Chrome sized to the canvas."""

    def _launch(width: int, height: int) -> Any:
        options = Options()
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--hide-scrollbars")
        options.add_argument(f"--window-size={width},{height}")
        for arg in config.extra_args:
            options.add_argument(arg)
        if config.chrome_binary:
            options.binary_location = config.chrome_binary
        return webdriver.Chrome(options=options)

    return _launch


@contextmanager
def browser_session(factory: DriverFactory, width: int, height: int) -> Iterator[Any]:
    try:
        driver = factory(width, height)
    except WebDriverException as exc:
        raise RenderError(f"Failed to launch headless browser: {exc.msg or exc}") from exc
    except OSError as exc:
        raise RenderError(f"Failed to launch headless browser: {exc}") from exc

    try:
        yield driver
    finally:
        try:
            driver.quit()
        except WebDriverException as exc:
            logger.warning("Browser quit failed: %s", exc)


class AdRenderer:
    """Composite a :class:`GeneratedAd` into JPEG bytes."""

    def __init__(
        self,
        config: Optional[RendererConfig] = None,
        *,
        driver_factory: Optional[DriverFactory] = None,
    ) -> None:
        self.config = config or RendererConfig()
        self.driver_factory = driver_factory or chrome_driver_factory(self.config)

    def _capture(self, page: str, width: int, height: int) -> bytes:
        timeout = self.config.timeout_seconds
        url = "data:text/html;charset=utf-8," + quote(page)
        with browser_session(self.driver_factory, width, height) as driver:
            try:
                driver.set_page_load_timeout(timeout)
                driver.execute_cdp_cmd(
                    "Emulation.setDeviceMetricsOverride",
                    {"width": width, "height": height, "deviceScaleFactor": 1, "mobile": False},
                )
                driver.get(url)
                WebDriverWait(driver, timeout).until(
                    lambda d: bool(d.execute_script(_READY_SCRIPT))
                )
                return driver.get_screenshot_as_png()
            except TimeoutException as exc:
                raise RenderError(f"Render timed out after {timeout:g}s") from exc
            except WebDriverException as exc:
                raise RenderError(f"Browser error while rendering: {exc.msg or exc}") from exc

    def _encode(self, png: bytes, width: int, height: int) -> bytes:
        try:
            with Image.open(BytesIO(png)) as captured:
                frame = captured.convert("RGB")
                if frame.size != (width, height):
                    frame = frame.resize((width, height), Image.Resampling.LANCZOS)
                out = BytesIO()
                frame.save(out, format="JPEG", quality=self.config.jpeg_quality)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise RenderError(f"Failed to encode rendered ad: {exc}") from exc
        return out.getvalue()

    def render(
        self, ad: GeneratedAd, template: Optional[AdTemplate] = None
    ) -> bytes:
        width, height = parse_dimensions(
            ad.metadata_json.dimensions, self.config.default_dimensions
        )
        page = build_html(ad.assets_json, template)
        logger.info(
            "render.start",
            extra={"project_id": ad.project_id, "template_id": ad.template_id, "size": f"{width}x{height}"},
        )
        png = self._capture(page, width, height)
        data = self._encode(png, width, height)
        logger.info(
            "render.done",
            extra={"project_id": ad.project_id, "bytes": len(data)},
        )
        return data


__all__ = [
    "AdRenderer",
    "browser_session",
    "build_html",
    "canvas_dimensions",
    "chrome_driver_factory",
    "parse_dimensions",
    "to_data_url",
]
