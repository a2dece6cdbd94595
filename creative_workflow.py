"""Command-line runner for the ad creative pipeline.

This utility mirrors the web workflow:

1. Extract a visual guideline from competitor ads (reasoning oracle required).
2. Derive a template from the guideline, or pick a built-in one for the image.
3. Check the template against the image's layout analysis.
4. Optionally render the ad to a JPEG with headless Chrome.

The script accepts a JSON configuration. Example usage::

    python creative_workflow.py --input campaign.json --output-dir out/
    python creative_workflow.py --input campaign.json --render

Recognised keys: ``project_id``, ``competitor_ads``, ``brand_identity``,
``guideline`` (skips extraction), ``platform``, ``template_type``,
``layout_map``, ``angle`` and ``ad`` (image_url, headline, body_copy, cta, hook,
dimensions).
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from adcreative.config import get_settings
from adcreative.errors import CreativePipelineError
from adcreative.models import (
    AdAssets,
    AdMetadata,
    AdTemplate,
    BrandIdentity,
    CompetitorAdBatch,
    GeneratedAd,
    ImageLayoutMap,
    VisualGuideline,
)
from adcreative.services.catalog import TemplateCatalog
from adcreative.services.compatibility import validate
from adcreative.services.guidelines import GuidelineExtractor
from adcreative.services.oracle import build_oracle
from adcreative.services.qa import check_ad
from adcreative.services.renderer import AdRenderer, canvas_dimensions


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the ad creative pipeline")
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to the JSON file with competitor ads, brand identity and ad content",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory to write the guideline, template, compatibility report and ad",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Render the ad with headless Chrome when ad content is provided",
    )
    return parser.parse_args(argv)


def load_configuration(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def resolve_guideline(config: Dict[str, Any], project_id: str) -> Optional[VisualGuideline]:
    if config.get("guideline"):
        return VisualGuideline.model_validate({"project_id": project_id, **config["guideline"]})
    if not config.get("competitor_ads"):
        return None

    settings = get_settings()
    extractor = GuidelineExtractor(
        build_oracle(settings.oracle),
        max_samples=settings.oracle.max_samples_per_competitor,
        timeout=settings.oracle.timeout_seconds,
    )
    batches = [CompetitorAdBatch.model_validate(item) for item in config["competitor_ads"]]
    brand = (
        BrandIdentity.model_validate(config["brand_identity"])
        if config.get("brand_identity")
        else None
    )
    return asyncio.run(extractor.extract(project_id, batches, brand))


def choose_template(
    catalog: TemplateCatalog,
    config: Dict[str, Any],
    guideline: Optional[VisualGuideline],
    layout_map: Optional[ImageLayoutMap],
) -> AdTemplate:
    if guideline is not None:
        return catalog.derive_from_guideline(
            guideline,
            platform=config.get("platform", "meta"),
            template_type=config.get("template_type", "static_image"),
        )
    if layout_map is not None:
        return catalog.select_for_image(layout_map, config.get("angle"))
    raise SystemExit("Provide competitor_ads, guideline or layout_map in the configuration.")


def build_ad(config: Dict[str, Any], project_id: str, template: AdTemplate) -> Optional[GeneratedAd]:
    ad_config = config.get("ad")
    if not ad_config:
        return None
    return GeneratedAd(
        project_id=project_id,
        template_id=template.id,
        assets_json=AdAssets.model_validate(ad_config),
        metadata_json=AdMetadata(
            dimensions=canvas_dimensions(
                ad_config.get("dimensions"), template, get_settings().renderer.default_dimensions
            ),
            platform=template.platform,
        ),
    )


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def run(args: argparse.Namespace) -> int:
    config = load_configuration(args.input)
    project_id = str(config.get("project_id") or "cli")
    layout_map = (
        ImageLayoutMap.model_validate(config["layout_map"]) if config.get("layout_map") else None
    )

    catalog = TemplateCatalog()
    guideline = resolve_guideline(config, project_id)
    template = choose_template(catalog, config, guideline, layout_map)

    if args.output_dir:
        args.output_dir.mkdir(parents=True, exist_ok=True)

    if guideline is not None:
        print("=== Step 1 · Visual guideline ===")
        print(guideline.model_dump_json(indent=2))
        if args.output_dir:
            _write_json(args.output_dir / "guideline.json", guideline.model_dump(mode="json"))

    print("\n=== Step 2 · Template ===")
    print(f"{template.name} ({template.id}, {template.platform}/{template.template_type})")
    if args.output_dir:
        _write_json(args.output_dir / "template.json", template.model_dump(mode="json"))

    if layout_map is not None:
        result = validate(template, layout_map)
        verdict = "compatible" if result.compatible else "NOT compatible"
        print("\n=== Step 3 · Compatibility ===")
        print(f"score={result.score} ({verdict})")
        for issue in result.issues:
            print(f"  - {issue}")
        if args.output_dir:
            _write_json(args.output_dir / "compatibility.json", result.model_dump(mode="json"))

    ad = build_ad(config, project_id, template)
    if ad is None:
        return 0

    qa = check_ad(ad, template)
    print("\n=== Step 4 · QA ===")
    print("passed" if qa.passed else "issues: " + "; ".join(qa.issues))

    if args.render:
        data = AdRenderer(get_settings().renderer).render(ad, template)
        print(f"\nRendered {len(data)} bytes ({ad.metadata_json.dimensions})")
        if args.output_dir:
            (args.output_dir / f"ad_{ad.id}.jpg").write_bytes(data)

    if args.output_dir:
        print(f"\nOutputs written to: {args.output_dir.resolve()}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    try:
        raise SystemExit(run(args))
    except CreativePipelineError as exc:
        raise SystemExit(f"{exc.error_code}: {exc.message}") from exc


if __name__ == "__main__":
    main()
