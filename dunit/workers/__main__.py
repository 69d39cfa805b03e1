import os

from .run_worker import run_worker

if __name__ == "__main__":
    run_worker(
        {},
        working_directory=os.getcwd(),
    )
