"""
ballspec module interface.

Usage:
    ballspec test [--report]
    ballspec bench
    ballspec cov
    ballspec get_config
"""

if __name__ == "__main__":

    import sys
    import pathlib
    import shutil
    from docopt import docopt
    from ballspec.tools import logging
    from ballspec.tests import test, bench, cov

    args = docopt(__doc__)
    if args['test']:
        sys.exit(test(report=args['--report']))
    elif args['bench']:
        sys.exit(bench())
    elif args['cov']:
        sys.exit(cov())
    elif args['get_config']:
        config_path = pathlib.Path(__file__).parent.joinpath('ballspec.cfg')
        shutil.copy(str(config_path), '.')
