import sys
import multiprocessing
from spec_matcher.cli import main as cli_main

def main():
    """
    Runs the command line interface.
    """
    # freeze_support() is necessary for multiprocessing to work correctly when
    # the application is frozen into an executable (e.g., with PyInstaller).
    multiprocessing.freeze_support()
    return cli_main()

if __name__ == "__main__":
    sys.exit(main())
