"""
Demonstration of isoslice perimeter slicing.

This script shows how to:
1. Load a solid model description
2. Plan layers and slice perimeters
3. Inspect the extrusion paths
4. Export G-code
"""

from pathlib import Path

from isoslice.core.config import load_gcode_settings, load_print_config
from isoslice.core.logging import configure_logging
from isoslice.geometry.model import load_model
from isoslice.postprocessor import GCodePostProcessor, PostProcessorConfig
from isoslice.slicing.slicer import PerimeterSlicer
from isoslice.slicing.toolpath import summarize_paths


def main():
    """Run slicing demonstration."""
    configure_logging(level="INFO")
    print("=" * 60)
    print("isoslice Perimeter Slicing Demo")
    print("=" * 60)

    example_dir = Path(__file__).parent
    model_file = example_dir / "models" / "cylinder.yaml"
    config_file = example_dir / "models" / "print.yaml"
    output_gcode = example_dir / "cylinder.gcode"

    # 1. Load model and settings
    print(f"\n1. Loading model: {model_file.name}")
    model = load_model(model_file)
    config = load_print_config(config_file)
    print(f"   [OK] Expression graph with {model.node_count()} nodes")
    print(f"   [OK] Extrusion width: {config.extrusion_width:.3f} mm")
    print(f"   [OK] Path spacing: {config.path_spacing:.4f} mm")
    print(f"   [OK] Perimeters: {config.perimeter_count}")

    # 2. Slice
    print("\n2. Slicing")
    slicer = PerimeterSlicer(model, config)
    paths = slicer.slice()
    print(f"   [OK] Planned {len(slicer.layers)} layers")
    print(f"   [OK] Extracted {len(paths)} paths")

    # 3. Statistics
    summary = summarize_paths(paths)
    print("\n3. Path statistics")
    print(f"   [OK] Total length: {summary['length_mm']:.2f} mm")
    print(f"   [OK] Filament used: {summary['filament_mm']:.2f} mm")

    print("\n   Layer breakdown:")
    for layer in slicer.layers[:5]:
        layer_paths = [p for p in paths if p.layer_index == layer.index]
        layer_length = sum(p.get_length() for p in layer_paths)
        print(f"     Layer {layer.index}: {len(layer_paths)} paths, {layer_length:.2f} mm")

    # 4. G-code
    print("\n4. Generating G-code")
    post = GCodePostProcessor(PostProcessorConfig.from_dict(load_gcode_settings(config_file)))
    gcode = slicer.emit(paths, post)
    post.write_text(gcode, output_gcode)
    print(f"   [OK] {len(gcode.splitlines())} lines")
    print(f"   [OK] Saved to: {output_gcode}")

    print("\n" + "=" * 60)
    print("Demo completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
