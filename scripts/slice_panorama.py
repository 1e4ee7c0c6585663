#!/usr/bin/env python3
"""
Slice panoramas into carousel tiles and write them as JPEG files.

Usage:
    python scripts/slice_panorama.py \
        --input data/panoramas \
        --output-dir data/tiles \
        --aspect-ratio 4:5 \
        --uneven-handling crop
"""

import argparse
from pathlib import Path
from typing import List

from tqdm import tqdm

from panocut.export import export_slices, generate_base_name
from panocut.schemas import AspectRatio, SliceConfig, UnevenHandling
from panocut.slicer import slice_image
from panocut.surfaces import PooledSurfaceProvider
from panocut.utils import is_supported_extension, load_image


def find_images(input_path: Path) -> List[Path]:
    """Return the image files at ``input_path`` (a file or a directory)."""
    if input_path.is_file():
        return [input_path] if is_supported_extension(input_path.name) else []
    return sorted(
        f for f in input_path.iterdir()
        if f.is_file() and is_supported_extension(f.name)
    )


def slice_file(
    image_path: Path,
    output_dir: Path,
    config: SliceConfig,
    provider=None,
) -> int:
    """Slice one image into ``output_dir/<base_name>/``.

    Returns:
        Number of tiles written, 0 if the image could not be read.
    """
    try:
        image = load_image(image_path)
    except ValueError:
        print(f"Warning: Could not read image {image_path}")
        return 0

    result = slice_image(image, config, provider)
    base_name = generate_base_name(image_path.name)
    paths = export_slices(result.slices, output_dir / base_name, base_name)
    return len(paths)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Slice panoramas into fixed-ratio carousel tiles'
    )
    parser.add_argument(
        '--input', type=str, required=True,
        help='Image file or directory of images'
    )
    parser.add_argument(
        '--output-dir', type=str, required=True,
        help='Output directory for tiles'
    )
    parser.add_argument(
        '--aspect-ratio', choices=[r.value for r in AspectRatio], default='1:1',
        help='Tile format (default: 1:1)'
    )
    parser.add_argument(
        '--uneven-handling', choices=[u.value for u in UnevenHandling], default='pad',
        help='How to handle widths that are not a whole number of tiles (default: pad)'
    )
    parser.add_argument(
        '--padding-color', type=str, default='#ffffff',
        help='Hex fill color for padding (default: #ffffff)'
    )
    parser.add_argument(
        '--padding-x', type=int, default=0,
        help='Margin added to the left and right before slicing (default: 0)'
    )
    parser.add_argument(
        '--padding-y', type=int, default=0,
        help='Margin added to the top and bottom before slicing (default: 0)'
    )

    args = parser.parse_args(argv)

    try:
        config = SliceConfig(
            aspect_ratio=args.aspect_ratio,
            uneven_handling=args.uneven_handling,
            padding_color=args.padding_color,
            manual_padding_x=args.padding_x,
            manual_padding_y=args.padding_y,
        )
    except ValueError as e:
        parser.error(str(e))

    input_path = Path(args.input)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    image_files = find_images(input_path)
    if not image_files:
        print(f"No images found in {input_path}")
        return 0

    print(f"Found {len(image_files)} images")
    print(f"Aspect ratio: {config.aspect_ratio.value}")
    print(f"Uneven handling: {config.uneven_handling.value}")
    print()

    provider = PooledSurfaceProvider()
    total_tiles = 0
    for image_path in tqdm(image_files, desc="Slicing images"):
        total_tiles += slice_file(image_path, output_dir, config, provider)

    print(f"\nTotal tiles created: {total_tiles}")
    print(f"Output saved to: {output_dir}")
    return total_tiles


if __name__ == '__main__':
    main()
