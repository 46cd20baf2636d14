import os

import numpy as np
import pyvista as pv


def to_polydata(mesh):
    """
    Convert an aligned HeightFieldMesh into a triangulated ``pyvista.PolyData``.

    The returned surface carries two point arrays: ``height`` (world height of
    every vertex) and ``offset`` (height relative to the alignment's reference
    height).
    """
    vertices = np.array(mesh.vertices(), dtype=np.float64)
    faces = mesh.faces()
    cells = np.hstack([np.full((faces.shape[0], 1), 3, dtype=np.int64), faces.astype(np.int64)])
    surface = pv.PolyData(vertices, cells.ravel())
    surface.point_data["height"] = vertices[:, 1]
    surface.point_data["offset"] = np.array(mesh.heights)
    return surface


def write_surface(mesh, path, binary=True):
    """
    Write the mesh surface to disk in any format PyVista can save (.vtp, .ply, .stl, .vtk, ...).

    Parameters
    ----------
    mesh : HeightFieldMesh
        An aligned mesh.
    path : str
        Output filename; the extension selects the format.
    binary : bool, optional
        Write binary files where the format allows it. Default True.

    Returns
    -------
    str
        The path written.
    """
    path = str(path)
    if os.path.splitext(path)[1] == "":
        raise ValueError("Output path '{}' needs a file extension to pick a format.".format(path))
    surface = to_polydata(mesh)
    surface.save(path, binary=binary)
    return path
