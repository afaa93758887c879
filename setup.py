from setuptools import setup

setup(name='bagman',
      version='0.1',
      description="bagman: a Python library for creating, updating, validating, and packaging BagIt bags",
      author="Ray Plante",
      author_email="raymond.plante@nist.gov",
      scripts=[ ],
      packages=['bagman', 'bagman.access'],
      install_requires=['bagit', 'fs', 'requests', 'setuptools<81'],
      extras_require={'test': ['pytest']},
      test_suite="tests.suite",
      test_runner="unittest:TextTestRunner"
)
