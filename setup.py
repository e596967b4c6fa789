from setuptools import setup, find_packages

setup(
    name='pksave',
    version='0.1',
    zip_safe=False,
    packages=find_packages(),
    package_data={
        'pksave': ['data/csv/*.csv']
    },
    install_requires=[
        'SQLAlchemy>=1.4',
        'construct>=2.10',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'pksave = pksave.main:setuptools_entry',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ]
)
