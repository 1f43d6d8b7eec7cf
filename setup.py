from pathlib import Path

from setuptools import setup

install_requires = [
    "trio>=0.22",
    "async_generator~=1.10",  # asynccontextmanager
]


setup(
    name='discord-ipc',
    version='0.1.0',
    packages=['discord_ipc'],
    url='https://github.com/SunDwarf/curious',
    license='LGPLv3',
    author='Laura Dickinson',
    author_email='l@veriny.tf',
    description='An async client for the Discord local IPC (Rich Presence) protocol',
    long_description=Path(__file__).with_name("README.rst").read_text(encoding="utf-8"),
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Framework :: Trio",
        "Development Status :: 4 - Beta"
    ],
    install_requires=install_requires,
    extras_require={
        "test": [
            "pytest>=7",
            "pytest-trio>=0.8",
        ],
        "docs": [
            "sphinx_py3doc_enhanced_theme",
            "sphinx",
            "sphinx-autodoc-typehints",
        ]
    },
)
