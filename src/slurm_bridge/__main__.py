"""Entry point for running the CLI as a module.

This allows `python -m slurm_bridge` to work the same as `slurm-bridge`.
"""

from slurm_bridge.cli import main

if __name__ == "__main__":
    main()
