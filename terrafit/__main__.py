"""
Command line entry point for fitting a height field to a depth recording.

Usage:
    python -m terrafit path/to/recording
    python -m terrafit path/to/recording --resolution 40 --iterations 10 --output ground.vtp
"""
import argparse
import sys

from tqdm import tqdm

from terrafit import __version__
from terrafit.dataset.camera import CameraIntrinsics
from terrafit.dataset.dataset import DataSet
from terrafit.mesh.mesh import HeightFieldMesh
from terrafit.mesh.parameters import MeshParameters
from terrafit.telemetry import capture_exception, init_telemetry


def build_parser():
    parser = argparse.ArgumentParser(
        prog='terrafit',
        description='terrafit - Fit a height field mesh to a depth camera recording'
    )
    parser.add_argument('dataset', type=str,
                        help='Recording folder containing depth/ and groundtruth.txt')
    parser.add_argument('--resolution', type=int, default=30,
                        help='Number of mesh vertices along one side (default: 30)')
    parser.add_argument('--scaling-factor', type=float, default=1.4,
                        help='Mesh extent relative to the first cloud\'s bounding box (default: 1.4)')
    parser.add_argument('--iterations', type=int, default=1,
                        help='Gauss-Seidel sweeps after every frame (default: 1)')
    parser.add_argument('--frames', type=int, default=None,
                        help='Stop after this many successfully read frames')
    parser.add_argument('--stride', type=int, default=4,
                        help='Depth pixel subsampling step (default: 4)')
    parser.add_argument('--depth-scale', type=float, default=5000.0,
                        help='Raw depth units per metre (default: 5000)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Threads used for point projection')
    parser.add_argument('--realign', action='store_true',
                        help='Re-align (and reset) the mesh on every frame instead of only the first')
    parser.add_argument('--output', type=str, default=None,
                        help='Write the fitted surface (.vtp, .ply, .stl, ...) or state (.hfm) here')
    parser.add_argument('--no-progress', action='store_true',
                        help='Disable the progress bar')
    parser.add_argument('--version', action='version', version='%(prog)s {}'.format(__version__))
    return parser


def run(args):
    parameters = MeshParameters(resolution=args.resolution,
                                scaling_factor=args.scaling_factor,
                                workers=args.workers)
    dataset = DataSet(args.dataset,
                      intrinsics=CameraIntrinsics(depth_scale=args.depth_scale),
                      stride=args.stride)
    mesh = HeightFieldMesh(parameters)
    total = len(dataset) if args.frames is None else min(args.frames, len(dataset))
    frames = dataset.frames(limit=args.frames)
    if not args.no_progress:
        frames = tqdm(frames, total=total, desc='Fitting frames ', unit='frame', leave=False)
    n_frames = 0
    n_hits = 0
    for points in frames:
        if points.shape[0] == 0:
            continue
        if args.realign or not mesh.is_aligned:
            mesh.align(points)
        n_hits += mesh.fit(points)
        mesh.relax(args.iterations)
        n_frames += 1
    if not mesh.is_aligned:
        print("No usable frames found in {}.".format(args.dataset))
        return 1
    print("Fitted {} frames ({} points, {} skipped frames, {} sweeps).".format(
        n_frames, n_hits, len(dataset.failed_frames), mesh.sweeps))
    heights = mesh.vertices()[:, 1]
    print("Height range: [{:.4f}, {:.4f}], residual: {:.3e}".format(
        heights.min(), heights.max(), mesh.residual()))
    if args.output:
        if args.output.lower().endswith('.hfm'):
            path = mesh.save(args.output)
        else:
            from terrafit.mesh.io.export import write_surface
            path = write_surface(mesh, args.output)
        print("Wrote {}".format(path))
    return 0


def main(argv=None):
    """Main entry point for the command line tool."""
    args = build_parser().parse_args(argv)
    init_telemetry(dsn=None, release=__version__, environment="cli")
    try:
        return run(args)
    except (FileNotFoundError, ValueError) as e:
        capture_exception(e)
        print("Error: {}".format(e))
        return 2


if __name__ == '__main__':
    sys.exit(main())
