from setuptools import find_packages, setup


setup(
    name="hmix-del2",
    description="Laplacian horizontal momentum mixing for unstructured ocean meshes",
    python_requires=">=3.8",
    packages=find_packages(include=["hmix_del2", "hmix_del2.*"]),
    install_requires=[
        "numpy",
        "xarray",
        "dask[array]",
    ],
    extras_require={
        "test": ["pytest"],
        "gpu": ["cupy"],
    },
    setup_requires=["setuptools_scm"],
    use_scm_version={
        "write_to": "hmix_del2/_version.py",
        "write_to_template": '__version__ = "{version}"',
        "tag_regex": r"^(?P<prefix>v)?(?P<version>[^\+]+)(?P<suffix>.*)?$",
        "fallback_version": "0.1.0",
    },
)
