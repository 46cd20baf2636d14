import os
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from tqdm import tqdm

from .raycast import NO_HIT


def parallel_disabled():
    flag = os.environ.get("TERRAFIT_DISABLE_PARALLEL", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


def split_points(points, chunk_size):
    return [points[i:i + chunk_size] for i in range(0, points.shape[0], chunk_size)]


def project_chunk(points, direction, vertices, faces, jtj, jtz, ray_caster):
    """
    Ray cast one chunk of points and accumulate the hits into fresh partial systems.

    Returns
    -------
    partial_jtj : NormalEquationsGrid
    partial_jtz : RhsVector
    hits : int
        Number of points whose line crossed the mesh.
    """
    partial_jtj = jtj.empty_like()
    partial_jtz = jtz.empty_like()
    bc = ray_caster.intersect(points, direction, vertices, faces)
    hit = bc[:, 0] != NO_HIT
    triangles = bc[hit, 0].astype(int)
    partial_jtj.update_triangle(triangles, bc[hit, 1], bc[hit, 2])
    partial_jtz.update_triangle(triangles, bc[hit, 1], bc[hit, 2], points[hit, 1])
    return partial_jtj, partial_jtz, int(np.count_nonzero(hit))


def accumulate(points, direction, vertices, faces, jtj, jtz, ray_caster,
               workers=1, chunk_size=50000, show_progress=False):
    """
    Add the normal equations of a point cloud into ``jtj`` and ``jtz``.

    Points are split into chunks that are projected independently, on a
    thread pool when ``workers > 1``. Each chunk fills its own partial
    accumulator; partials are added into the shared accumulators on the
    calling thread in chunk order, so the merged system does not depend on
    which worker finishes first.

    Parameters
    ----------
    points : ndarray of shape (n, 3)
        World-frame sample points; column 1 is the fitting target.
    direction : ndarray of shape (3,)
        Line direction used for every point.
    vertices, faces : ndarray
        Current mesh geometry.
    jtj : NormalEquationsGrid
        Matrix accumulator, updated in place.
    jtz : RhsVector
        Right-hand side accumulator, updated in place.
    ray_caster : RayCaster
        Object providing ``intersect(points, directions, vertices, faces)``.
    workers : int, optional
        Thread count. Default 1.
    chunk_size : int, optional
        Points per task. Default 50000.
    show_progress : bool, optional
        Display a tqdm progress bar over chunks.

    Returns
    -------
    hits : int
        Number of points that contributed.
    """
    chunks = split_points(points, chunk_size)
    if len(chunks) == 0:
        return 0

    # Workers clone these zeroed templates and never touch jtj/jtz.
    template_jtj = jtj.empty_like()
    template_jtz = jtz.empty_like()

    def _task(chunk):
        return project_chunk(chunk, direction, vertices, faces, template_jtj, template_jtz, ray_caster)

    if workers <= 1 or len(chunks) == 1 or parallel_disabled():
        results = map(_task, chunks)
        if show_progress:
            results = tqdm(results, total=len(chunks), desc='Projecting points ', unit='chunk', leave=False)
        hits = 0
        for partial_jtj, partial_jtz, n_hits in results:
            jtj += partial_jtj
            jtz += partial_jtz
            hits += n_hits
        return hits

    hits = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = executor.map(_task, chunks)
        if show_progress:
            results = tqdm(results, total=len(chunks), desc='Projecting points ', unit='chunk', leave=False)
        for partial_jtj, partial_jtz, n_hits in results:
            jtj += partial_jtj
            jtz += partial_jtz
            hits += n_hits
    return hits
