from setuptools import setup, find_packages

with open("README.md", "r", encoding='utf-8') as fh:
    long_description = fh.read()

setup(
    name="python-ldap-mock",
    version="0.1.0",
    packages=find_packages(),
    include_package_data=True,
    package_data={
        'ldap_mock': ["py.typed"],
        'ldap_mock.test': ["*.json", "*.ldif"],
    },
    python_requires='>=3.10',
    install_requires=[
        'python-ldap',
        'case-insensitive-dictionary',
        'ldap-filter'
    ],
    extras_require={
        'test': ['pytest'],
    },
    author="Caltech IMSS ADS",
    author_email="cmalek@caltech.edu",
    description="In-memory LDAP directories and a mock LDAP client for use in testing.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['ldap', 'mock', 'testing'],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Software Development :: Testing',
    ],
)
