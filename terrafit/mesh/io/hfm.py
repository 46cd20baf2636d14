import json

import numpy as np


HFM_FORMAT = "terrafit.mesh/1.0"


def _ensure_ext(path: str) -> str:
    path = str(path)
    if not path.lower().endswith(".hfm"):
        return path + ".hfm"
    return path


def write_hfm(mesh, path: str) -> str:
    """
    Serialize the fitting state of a HeightFieldMesh into a .hfm file.

    The .hfm container is a compressed NumPy archive written with a .hfm
    extension. Besides the mesh parameters and alignment it stores the
    accumulated normal equations and right-hand side, so fitting can resume
    after loading without re-reading any point cloud.

    Parameters
    ----------
    mesh : terrafit.mesh.mesh.HeightFieldMesh
        An aligned mesh.
    path : str
        Output filename. If no ".hfm" extension is provided, it will be added.

    Returns
    -------
    str
        The path actually written.
    """
    state = mesh._require_alignment("save")
    out_path = _ensure_ext(path)

    meta = {
        "format": HFM_FORMAT,
        "parameters": mesh.parameters.to_dict(),
    }
    meta_json = json.dumps(meta)

    arrays = {
        "__meta__": np.frombuffer(meta_json.encode("utf-8"), dtype=np.uint8),
        "scale": state.alignment.scale,
        "translation": state.alignment.translation,
        "vertices": state.vertices,
        "heights": state.heights,
        "jtj_diagonal": state.jtj.diagonal,
        "jtj_coefficients": state.jtj.coefficients,
        "jtz": state.jtz.values,
    }

    # Use a file handle to avoid NumPy forcing a .npz extension
    with open(out_path, "wb") as fh:
        np.savez_compressed(fh, **arrays)
    return out_path


def read_hfm(path: str, ray_caster=None):
    """
    Deserialize a HeightFieldMesh from a .hfm file.

    Parameters
    ----------
    path : str
        The input .hfm file.
    ray_caster : object, optional
        Ray caster for the restored mesh. Defaults to the built-in one.

    Returns
    -------
    HeightFieldMesh
        An aligned mesh whose heights and accumulated system equal the saved
        ones.
    """
    from terrafit.mesh.alignment import AlignmentTransform
    from terrafit.mesh.core.jtj_grid import NormalEquationsGrid
    from terrafit.mesh.core.jtz_vector import RhsVector
    from terrafit.mesh.mesh import HeightFieldMesh, _FitState
    from terrafit.mesh.parameters import MeshParameters

    file_path = _ensure_ext(path)
    with np.load(file_path, allow_pickle=False) as data:
        if "__meta__" not in data.files:
            raise ValueError("Invalid .hfm file: missing metadata.")
        meta = json.loads(bytes(data["__meta__"].tolist()).decode("utf-8"))
        if not isinstance(meta, dict) or meta.get("format") != HFM_FORMAT:
            raise ValueError("Unsupported .hfm format or version.")
        parameters = MeshParameters.from_dict(meta["parameters"])
        mesh = HeightFieldMesh(parameters, ray_caster=ray_caster)
        n = parameters.resolution * parameters.resolution
        vertices = np.array(data["vertices"], dtype=np.float64)
        if vertices.shape != (n, 3):
            raise ValueError("Stored vertices have shape {}, expected {}.".format(vertices.shape, (n, 3)))
        alignment = AlignmentTransform(data["scale"], data["translation"])
        jtj = NormalEquationsGrid(parameters.resolution, faces=mesh.faces())
        jtj.diagonal[:] = data["jtj_diagonal"]
        jtj.coefficients[:] = data["jtj_coefficients"]
        jtz = RhsVector(parameters.resolution, faces=mesh.faces())
        jtz.values[:] = data["jtz"]
        heights = np.array(data["heights"], dtype=np.float64)
    mesh._state = _FitState(alignment, vertices, heights, jtj, jtz)
    return mesh
