"""
PhotoAdjust Command Line Interface

Render presets and adjustments onto images from the shell, singly or in
batches, and export preset preview thumbnails.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Tuple

import click
from tqdm import tqdm

from .config import get_config_value, load_config, save_config, update_config_value
from .exceptions import ImageDecodeError, PhotoAdjustError
from .processing import (
    AdjustmentCatalog,
    AdjustmentKind,
    AdjustmentPipeline,
    AdjustmentState,
    EditImage,
    EditRecipe,
    EditSession,
    FilterPreset,
    PresetRegistry,
    default_backend,
)
from .utils.logging import RenderStats, StructuredLogger, setup_console_logging

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {'.jpg', '.jpeg', '.png', '.tif', '.tiff', '.bmp', '.webp'}


def _parse_settings(settings: Tuple[str, ...]) -> dict:
    """Parse repeated --set kind=value options."""
    parsed = {}
    for setting in settings:
        if '=' not in setting:
            raise click.BadParameter(f"expected kind=value, got '{setting}'", param_hint='--set')
        name, _, raw_value = setting.partition('=')
        try:
            kind = AdjustmentKind.parse(name)
            parsed[kind] = float(raw_value)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint='--set') from e
    return parsed


def _build_edit(pipeline: AdjustmentPipeline, preset_name: Optional[str],
                settings: Tuple[str, ...], recipe_path: Optional[str] = None):
    """
    Resolve the preset and adjustment state for a render.

    Order of precedence: preset overrides, then recipe values, then --set.
    """
    recipe = None
    if recipe_path:
        try:
            recipe = EditRecipe.load(recipe_path)
        except PhotoAdjustError as e:
            raise click.ClickException(str(e))
        if preset_name is None:
            preset_name = recipe.preset

    preset = None
    if preset_name is not None:
        preset = pipeline.registry.find(preset_name)
        if preset is None:
            names = ", ".join(pipeline.registry.names())
            raise click.ClickException(f"Unknown preset '{preset_name}'. Available: {names}")

    state = AdjustmentState.from_preset(preset)
    if recipe is not None:
        try:
            state = recipe.apply_to(state)
        except PhotoAdjustError as e:
            raise click.ClickException(str(e))
    state = AdjustmentState.merge_overrides(state, _parse_settings(settings))
    return preset, state


def _pipeline_from_config(config: dict) -> AdjustmentPipeline:
    try:
        return AdjustmentPipeline.from_config(config)
    except PhotoAdjustError as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _session_from_config(config: dict) -> EditSession:
    try:
        return EditSession.from_config(config)
    except PhotoAdjustError as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _open_image(path: str) -> EditImage:
    try:
        return EditImage.open(path)
    except ImageDecodeError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.version_option(package_name='photoadjust')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    PhotoAdjust - non-destructive preset and adjustment rendering

    Applies named filter presets and continuous adjustments (exposure,
    contrast, warmth, ...) to images without touching the originals.
    """
    ctx.ensure_object(dict)

    ctx.obj['config'] = load_config(config)

    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    else:
        level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    setup_console_logging(level)

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.pass_context
def presets(ctx):
    """List available presets in display order."""
    pipeline = _pipeline_from_config(ctx.obj['config'])

    for preset in pipeline.registry:
        style = preset.style_transform or '-'
        click.echo(f"{preset.name:<12} style={style}")
        for kind, value in preset.overrides.items():
            click.echo(f"    {kind.value:<12} {AdjustmentCatalog.format_value(kind, value)}")


@main.command()
def adjustments():
    """List adjustment kinds with their defaults and ranges."""
    for kind in AdjustmentCatalog.kinds():
        spec = AdjustmentCatalog.spec_of(kind)
        click.echo(
            f"{kind.value:<12} {spec.label:<12} default={AdjustmentCatalog.format_value(kind, spec.default)} "
            f"range=[{AdjustmentCatalog.format_value(kind, spec.minimum)}, "
            f"{AdjustmentCatalog.format_value(kind, spec.maximum)}]"
        )


@main.command('save-preset')
@click.argument('name')
@click.argument('config_path', type=click.Path(dir_okay=False))
@click.option('--style', help='Style transform to apply first (e.g. mono, chrome)')
@click.option('--set', 'settings', multiple=True, metavar='KIND=VALUE',
              help='Adjustment override (repeatable)')
def save_preset(name: str, config_path: str, style: Optional[str], settings: Tuple[str, ...]):
    """
    Add a custom preset to a configuration file.

    NAME: Preset name (must not clash with an existing preset)
    CONFIG_PATH: YAML configuration file to update (created if missing)
    """
    if style is not None and not default_backend().has_operator(style):
        raise click.BadParameter(f"unknown style transform '{style}'", param_hint='--style')

    config = load_config(config_path if Path(config_path).exists() else None)
    try:
        preset = FilterPreset(name, style_transform=style, overrides=_parse_settings(settings))
        registry = PresetRegistry.from_config(config)
    except PhotoAdjustError as e:
        raise click.ClickException(str(e))

    if name in registry:
        raise click.ClickException(f"Preset '{name}' already exists")

    custom = list(get_config_value(config, 'presets.custom', []) or [])
    custom.append(preset.to_dict())
    update_config_value(config, 'presets.custom', custom)
    logger.debug(f"presets.custom now holds {len(custom)} presets")

    if not save_config(config, config_path):
        raise click.ClickException(f"Could not write configuration to {config_path}")
    click.echo(f"💾 Saved preset '{name}' to {config_path}")


@main.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_path', type=click.Path(dir_okay=False))
@click.option('--preset', '-p', help='Preset name to apply')
@click.option('--set', 'settings', multiple=True, metavar='KIND=VALUE',
              help='Set one adjustment (repeatable)')
@click.option('--recipe', '-r', type=click.Path(exists=True, dir_okay=False),
              help='Load preset and adjustments from a JSON recipe')
@click.option('--save-recipe', type=click.Path(dir_okay=False),
              help='Write the effective preset and adjustments as a JSON recipe')
@click.pass_context
def render(ctx, input_path: str, output_path: str, preset: Optional[str],
           settings: Tuple[str, ...], recipe: Optional[str], save_recipe: Optional[str]):
    """
    Render a preset and adjustments onto one image.

    INPUT_PATH: Source image
    OUTPUT_PATH: Destination file (format from the suffix)
    """
    config = ctx.obj['config']
    quiet = ctx.obj['quiet']
    pipeline = _pipeline_from_config(config)

    chosen_preset, state = _build_edit(pipeline, preset, settings, recipe)
    source = _open_image(input_path)

    result = pipeline.render(source, chosen_preset, state)
    result.save(output_path, quality=get_config_value(config, 'output.jpeg_quality', 95))

    if save_recipe:
        EditRecipe.from_state(chosen_preset.name if chosen_preset else None, state).save(save_recipe)

    if not quiet:
        label = chosen_preset.name if chosen_preset else 'no preset'
        click.echo(f"✅ Rendered {Path(input_path).name} ({label}) -> {output_path}")
        if save_recipe:
            click.echo(f"💾 Recipe saved to: {save_recipe}")


@main.command()
@click.argument('input_dir', type=click.Path(exists=True, file_okay=False))
@click.argument('output_dir', type=click.Path(file_okay=False))
@click.option('--preset', '-p', help='Preset name to apply')
@click.option('--set', 'settings', multiple=True, metavar='KIND=VALUE',
              help='Set one adjustment (repeatable)')
@click.option('--recipe', '-r', type=click.Path(exists=True, dir_okay=False),
              help='Load preset and adjustments from a JSON recipe')
@click.option('--format', 'output_format', type=click.Choice(['PNG', 'JPEG', 'TIFF'], case_sensitive=False),
              help='Output format (defaults to output.format from config)')
@click.option('--recursive/--no-recursive', default=False, help='Process subdirectories')
@click.pass_context
def batch(ctx, input_dir: str, output_dir: str, preset: Optional[str],
          settings: Tuple[str, ...], recipe: Optional[str],
          output_format: Optional[str], recursive: bool):
    """
    Render the same edit onto every image in a directory.

    INPUT_DIR: Directory of source images
    OUTPUT_DIR: Directory for rendered images
    """
    config = ctx.obj['config']
    quiet = ctx.obj['quiet']
    pipeline = _pipeline_from_config(config)
    chosen_preset, state = _build_edit(pipeline, preset, settings, recipe)

    output_format = (output_format or get_config_value(config, 'output.format', 'PNG')).upper()
    suffix = '.jpg' if output_format == 'JPEG' else f".{output_format.lower()}"
    quality = get_config_value(config, 'output.jpeg_quality', 95)

    input_root = Path(input_dir)
    pattern = '**/*' if recursive else '*'
    image_files = sorted(
        path for path in input_root.glob(pattern)
        if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
    )

    if not image_files:
        raise click.ClickException(f"No images found in {input_dir}")

    output_root = Path(output_dir)
    output_root.mkdir(parents=True, exist_ok=True)

    stats = RenderStats()
    stats.set_total(len(image_files))
    batch_log = StructuredLogger(__name__, {
        'preset': chosen_preset.name if chosen_preset else None,
        'format': output_format,
    })

    for path in tqdm(image_files, desc="Rendering", disable=quiet):
        start = time.time()
        destination = output_root / path.relative_to(input_root).with_suffix(suffix)
        file_log = batch_log.bind(file=str(path))
        try:
            source = EditImage.open(path)
            result = pipeline.render(source, chosen_preset, state)
            destination.parent.mkdir(parents=True, exist_ok=True)
            result.save(destination, format=output_format, quality=quality)
            elapsed = time.time() - start
            stats.add_result(elapsed)
            file_log.debug("Rendered image", output=str(destination), seconds=round(elapsed, 3))
        except (PhotoAdjustError, OSError) as e:
            file_log.error("Failed to render image", error=str(e))
            stats.add_error(str(path), str(e))

    if not quiet:
        stats.print_summary()

    if stats.failed_images and not stats.rendered_images:
        raise click.ClickException("No images could be rendered")


@main.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_dir', type=click.Path(file_okay=False))
@click.option('--size', '-s', type=click.IntRange(min=1),
              help='Longest thumbnail side in pixels (defaults to preview.thumbnail_size)')
@click.pass_context
def previews(ctx, input_path: str, output_dir: str, size: Optional[int]):
    """
    Export a thumbnail of the image rendered with every preset.

    INPUT_PATH: Source image
    OUTPUT_DIR: Directory for the preview PNGs
    """
    config = ctx.obj['config']
    size = size or get_config_value(config, 'preview.thumbnail_size', 80)

    session = _session_from_config(config)
    session.load_image(_open_image(input_path))

    output_root = Path(output_dir)
    output_root.mkdir(parents=True, exist_ok=True)

    for index, (name, image) in enumerate(session.preset_previews(size).items()):
        destination = output_root / f"{index:02d}_{name}.png"
        image.save(destination, format='PNG')
        if not ctx.obj['quiet']:
            click.echo(f"  {name} -> {destination.name}")


if __name__ == '__main__':
    main()
