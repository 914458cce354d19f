"""
Command-line interface for fractal generation.

This module provides the ``marzipan`` command with subcommands to render
a single image, render a zoom sequence and list the available palettes,
colors and fractal types.
"""

import click
import sys
from pathlib import Path
import logging
import time

from .. import __version__
from ..api import DEFAULT_ZOOM_FRAMES, FractalRenderer, RenderConfig
from ..acceleration.parallel import DEFAULT_STRIP_WIDTH, EXECUTORS
from ..core.fractal_types import FRACTAL_TYPES, JULIA_PRESETS, FractalRegistry
from ..io.config import DEFAULT_MASK_DIR, DEFAULT_PALETTE_SIZE, build_image_params, parse_orbits, palette_to_text
from ..rendering.coloring import BUILTIN_PALETTES, NAMED_COLORS

logger = logging.getLogger(__name__)


def image_options(command):
    """Options shared by the commands that render images."""
    options = [
        click.option('--type', '-t', 'fractal_type', type=click.Choice(FRACTAL_TYPES),
                     default='mandelbrot', show_default=True, help='Fractal type'),
        click.option('--width', '-w', type=int, help='Image width'),
        click.option('--height', '-h', type=int, help='Image height'),
        click.option('--size', type=int, help='Width and height of a square image'),
        click.option('--left', type=float, help='Left edge of the viewport'),
        click.option('--right', type=float, help='Right edge of the viewport'),
        click.option('--top', type=float, help='Top edge of the viewport'),
        click.option('--bottom', type=float, help='Bottom edge of the viewport'),
        click.option('--x', 'center_x', type=float, help='Viewport center, real part'),
        click.option('--y', 'center_y', type=float, help='Viewport center, imaginary part'),
        click.option('--window', type=float, help='Viewport half-width around the center'),
        click.option('--max-iter', type=int, help='Maximum iterations'),
        click.option('--palette', help='Palette name or "divergence,color1,color2,..."'),
        click.option('--palette-size', type=float, default=DEFAULT_PALETTE_SIZE, show_default=True,
                     help='Palette period in value units'),
        click.option('--power', type=float, default=2.0, show_default=True,
                     help='Power of the Mandelbrot recurrence (Multibrot when not 2)'),
        click.option('--julia-c', help='Julia constant "real,imag" or preset name'),
        click.option('--orbit', 'orbits', multiple=True,
                     help='Orbit trap: point(x,y,d), line(a,b,c,d) or raster(name[,d])'),
        click.option('--mask-dir', type=click.Path(file_okay=False), default=str(DEFAULT_MASK_DIR),
                     show_default=True, help='Directory of raster orbit masks'),
        click.option('--iterations', type=int, help='Chaos-game iterations'),
        click.option('--seed', type=int, help='Chaos-game random seed'),
        click.option('--processes', type=int, help='Number of parallel workers'),
        click.option('--executor', type=click.Choice(EXECUTORS), default='process', show_default=True,
                     help='Parallel executor'),
        click.option('--strip-width', type=int, default=DEFAULT_STRIP_WIDTH, show_default=True,
                     help='Width of the column strips handed to workers'),
        click.option('--no-metadata', is_flag=True, help='Do not embed render metadata'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _prepare(options, output_format='png'):
    """Build image parameters, orbits and the renderer from parsed options."""
    params = build_image_params(
        width=options['width'], height=options['height'], size=options['size'],
        left=options['left'], right=options['right'], top=options['top'], bottom=options['bottom'],
        x=options['center_x'], y=options['center_y'], window=options['window'],
        max_iter=options['max_iter'], palette=options['palette'], palette_size=options['palette_size'],
        power=options['power'], julia_c=options['julia_c'],
    )
    orbits = parse_orbits(options['orbits'], options['mask_dir'])

    config = RenderConfig(
        fractal_type=options['fractal_type'],
        iterations=options['iterations'],
        seed=options['seed'],
        processes=options['processes'],
        executor=options['executor'],
        strip_width=options['strip_width'],
        output_format=output_format,
        save_metadata=not options['no_metadata'],
    )
    return params, orbits, FractalRenderer(config)


def _fail(ctx, error: Exception):
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    Marzipan - escape-time and chaos-game fractal renderer.

    Render Mandelbrot, Julia, Multibrot, orbit-trapped, fern, Sierpinski and
    flame fractals to 16-bit images, with arbitrary precision for deep zooms.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"marzipan v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('output', type=click.Path(dir_okay=False))
@image_options
@click.pass_context
def render(ctx, output, **options):
    """
    Render a single fractal image.

    OUTPUT: Output image file path (.png, .tif, .tiff, .jpg or .jpeg)
    """
    try:
        params, orbits, renderer = _prepare(options)

        click.echo(f"Rendering {options['fractal_type']} fractal "
                   f"({params.width}x{params.height})...")
        start_time = time.time()

        renderer.render(params, Path(output), orbits)

        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('output_dir', type=click.Path(file_okay=False))
@image_options
@click.option('--frames', type=int, default=DEFAULT_ZOOM_FRAMES, show_default=True,
              help='Number of frames')
@click.option('--format', 'output_format', type=click.Choice(['png', 'tiff', 'jpg']), default='png',
              show_default=True, help='Frame image format')
@click.pass_context
def zoom(ctx, output_dir, frames, output_format, **options):
    """
    Render a zoom toward the center of the viewport as numbered frames.

    OUTPUT_DIR: Directory receiving the frames
    """
    try:
        params, orbits, renderer = _prepare(options, output_format)

        click.echo(f"Rendering {frames} frames of {options['fractal_type']} into {output_dir}...")
        start_time = time.time()

        paths = renderer.render_zoom(params, Path(output_dir), orbits, frames)

        click.echo(f"Zoom complete: {len(paths)} frames in {time.time() - start_time:.2f}s")

    except Exception as e:
        _fail(ctx, e)


@main.command()
def palettes():
    """List built-in palettes and color names."""
    click.echo("Built-in palettes:")
    for name, palette in BUILTIN_PALETTES.items():
        click.echo(f"  {name:<12} {palette_to_text(palette)}")

    click.echo("\nColor names:")
    click.echo("  " + ', '.join(sorted(NAMED_COLORS)))

    click.echo("\nJulia presets:")
    for name, c in JULIA_PRESETS.items():
        click.echo(f"  {name:<12} {c.real},{c.imag}")


@main.command()
def fractals():
    """List available fractal types."""
    click.echo("Available fractal types:")
    for name, description in FractalRegistry.list_fractals().items():
        click.echo(f"  {name:<12} {description}")


if __name__ == '__main__':
    main()
