from setuptools import setup

setup(name='censuscartogram',
      version='0.1.0',
      description='Continuous cartograms of Irish county populations from the censuses 1841 to 2016.',
      license='MIT',
      packages=['censuscartogram'],
      include_package_data = True,
      package_data={
          'censuscartogram': ['data/*.yaml'],
      },
      python_requires='>=3.9',
      install_requires=[
          'numpy',
          'pandas',
          'geopandas',
          'shapely>=2.0',
          'matplotlib',
          'easing_functions',
          'progressbar2',
          'visvalingamwyatt',
          'imageio>=2.28',
          'pillow',
          'PyYAML',
          'click',
          'openpyxl',
      ],
      extras_require={
          'test': [
              'pytest',
          ],
      },
      entry_points={
          'console_scripts': [
              'censuscartogram=censuscartogram.cli:main',
          ],
      },
      zip_safe=False)
