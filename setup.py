################################################################################
#
#  Copyright (C) 2021-2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

import setuptools


PACKAGE_NAME: str = "oasis_calibration"

setuptools.setup(
    name=PACKAGE_NAME,
    version="0.1.0",
    author="Garrett Brown",
    maintainer="Garrett Brown",
    description="Accelerometer scale and cross-coupling calibration for known bias and gravity norm",
    url="https://github.com/eigendude/OASIS",
    license="Apache-2.0",
    zip_safe=True,
    keywords=[
        "IMU",
        "accelerometer",
        "calibration",
    ],
    classifiers=[
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    python_requires=">=3.10",
    packages=setuptools.find_namespace_packages(
        include=[PACKAGE_NAME, PACKAGE_NAME + ".*"]
    ),
    install_requires=[
        "numpy",
        "PyYAML",
        "setuptools",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
