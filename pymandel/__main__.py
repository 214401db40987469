import argparse
import logging

from .config import ConfigError, EngineConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="view",
        choices=["view", "render"],
        help="open the interactive viewer or render a preview image",
    )
    parser.add_argument(
        "--center-re",
        default="-0.75",
        help="real part of the seed reference coordinate, as a decimal string",
    )
    parser.add_argument(
        "--center-im",
        default="0.0",
        help="imaginary part of the seed reference coordinate, as a decimal string",
    )
    parser.add_argument(
        "--zoom",
        type=float,
        default=3.0,
        help="half-height of the initial view in the complex plane",
    )
    parser.add_argument(
        "--escape-radius",
        default="100",
        help="the bailout radius of the escape test",
    )
    parser.add_argument(
        "--imax",
        type=int,
        default=20_000,
        help="the max iterations the iteration budget may reach",
    )
    parser.add_argument(
        "--capacity",
        type=int,
        default=100_000,
        help="number of reference orbit samples to pre-allocate",
    )
    parser.add_argument(
        "--iteration-speed",
        type=int,
        default=100,
        help="iterations added per unit of log(1 / zoom)",
    )
    parser.add_argument(
        "--budget",
        type=int,
        default=50,
        help="reference orbit samples computed per frame",
    )
    parser.add_argument(
        "--precision",
        type=int,
        default=50,
        help="minimum decimal digits of precision for the reference orbit",
    )
    parser.add_argument(
        "--dims",
        type=int,
        default=[1200, 900],
        nargs=2,
        help="The dimensions of the window, in pixels",
    )
    parser.add_argument(
        "--zoom-at-cursor",
        action="store_true",
        help="scroll zooms in steps at the cursor instead of adding zoom velocity",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=0.25,
        help="preview resolution relative to the window",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=1,
        help="frames to simulate before rendering (render command)",
    )
    parser.add_argument(
        "-o",
        "--out-file",
        default="out.png",
        help="The output file to write to (render command)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log engine activity",
    )
    return parser


def build_config(args) -> EngineConfig:
    return EngineConfig(
        center_re=args.center_re,
        center_im=args.center_im,
        zoom=args.zoom,
        escape_radius=args.escape_radius,
        capacity=args.capacity,
        maximum_iterations=args.imax,
        iteration_speed=args.iteration_speed,
        frame_budget=args.budget,
        precision_digits=args.precision,
        width=args.dims[0],
        height=args.dims[1],
        zoom_at_cursor=args.zoom_at_cursor,
    )


def render(engine, args):
    from .preview import render_preview, save_png

    snapshot = None
    for _ in range(max(1, args.frames)):
        snapshot = engine.update(1.0 / 60)
    print(f"Reference orbit: {snapshot.valid_length} pts, escaped={engine.orbit.escaped}")

    rgb = render_preview(snapshot.frame, snapshot.orbit, args.scale)
    save_png(rgb, args.out_file)
    print(f"Saved: {args.out_file}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = build_config(args)
    except ConfigError as err:
        parser.error(str(err))

    from .engine import PerturbationEngine

    engine = PerturbationEngine(config)
    print(f"Reference: {config.center_re} + {config.center_im}i")
    print(f"zoom: {config.zoom}")
    print(f"escape radius: {config.escape_radius}")
    print(f"dims: {config.width}x{config.height}")

    if args.command == "render":
        render(engine, args)
    else:
        from .viewer import DeepZoomViewer

        DeepZoomViewer(engine, preview_scale=args.scale).run()


if __name__ == "__main__":
    main()
