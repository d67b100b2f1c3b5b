from setuptools import setup, find_packages
import os
import re

here = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(here, "stratus", "__init__.py")) as fp:
    version = re.search(r"__version__\s*=\s*['\"]([^'\"]+)['\"]", fp.read()).group(1)

setup(name='Stratus',
      version=version,
      description="Compute drivers for Azure, Docker, vCloud Director and friends, in the libcloud mould",
      long_description = open(os.path.join(here, "README.rst")).read() + "\n" + \
                         open(os.path.join(here, "CHANGES")).read(),
      author="Isotoma Limited",
      author_email="support@isotoma.com",
      license="Apache Software License",
      classifiers = [
          "Intended Audience :: System Administrators",
          "Operating System :: POSIX",
          "License :: OSI Approved :: Apache Software License",
          "Programming Language :: Python :: 3",
      ],
      packages=find_packages(exclude=['ez_setup']),
      package_data={
          'stratus': ['templates/*/*.xml'],
      },
      include_package_data=True,
      zip_safe=False,
      python_requires='>=3.6',
      install_requires=[
          'setuptools',
          'jinja2',
          'PyYAML',
          'python-dateutil',
          'apache-libcloud >= 3.0',
          'paramiko >= 1.8.0',
      ],
      extras_require = {
          'test': ['mock', 'nose'],
          },
      entry_points = """
      [console_scripts]
      stratus = stratus.main:main
      """
      )
