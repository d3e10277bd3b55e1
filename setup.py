from setuptools import setup, find_packages


setup(
    name='gridtools',
    version='0.1a',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Crop, pad and regrid volumetric images without '
                'moving their content in world space',
    python_requires='>=3.7',
    install_requires=['nibabel', 'numpy', 'scipy'],
    extras_require={'test': ['pytest']},
)
