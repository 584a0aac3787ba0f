from setuptools import setup

setup(name='bagkit',
      version='0.1',
      description="bagkit: a Python library for reading, validating and updating BagIt bags",
      author="Ray Plante",
      author_email="raymond.plante@nist.gov",
      scripts=[ ],
      packages=['bagkit', 'bagkit.access', 'bagkit.components'],
      install_requires=['fs>=2.4', 'requests', 'setuptools<81'],
      extras_require={ 'test': ['pytest'] },
      test_suite="tests.suite",
      test_runner="unittest:TextTestRunner"
)
