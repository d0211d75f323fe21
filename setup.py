"""
Packaging script for PyPI.
"""
import setuptools

setuptools.setup(
	name='noether-ir',
	author='Beth Kjos',
	author_email='kjosib@gmail.com',
	version='0.0.1',
	packages=['noether', ],
	entry_points={
		'console_scripts': ["noether = noether.cmdline:main"],
	},
	license='MIT',
	description='A type checker for a small tensor IR, named for German mathematician Emmy Noether',
	long_description=open('README.md').read(),
	long_description_content_type="text/markdown",
	classifiers=[
		"Programming Language :: Python :: 3.9",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Development Status :: 3 - Alpha",
		"Intended Audience :: Developers",
		"Intended Audience :: Education",
		"Topic :: Software Development :: Compilers",
		"Topic :: Education",
		"Environment :: Console",
    ],
	python_requires='>=3.9',
	install_requires=[
		"booze-tools>=0.6.2.1",
	]
)
