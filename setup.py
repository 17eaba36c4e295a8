from setuptools import setup

setup(
    name='PyTrials',
    version='0.1',
    packages=['core', 'utils'],
    install_requires=['numpy', 'pandas', 'openpyxl'],
    extras_require={
        'spreadsheets': ['xlrd', 'odfpy'],
        'test': ['pytest'],
    },
    python_requires='>=3.8',
    license='',
    author='Emmanouil Froudarakis',
    author_email='',
    description='Trial sequencing and session data for behavioral experiments'
)
