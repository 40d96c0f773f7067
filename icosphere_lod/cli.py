import logging
import os

logger = logging.getLogger(__name__)


def argparse_setup(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Run a viewpoint path through an adaptive icosphere.")
    parser.add_argument(
        "--config",
        default="./configs/config.yaml",
        dest="config_path",
        help="Path to the configuration file."
    )
    parser.add_argument(
        "--outdir",
        default=None,
        dest="outdir",
        help="Output directory for the node graph, leaf mesh and tick statistics."
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        default=False,
        help="If set, validate the graph invariants after every tick."
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="If set, write a graph debug summary next to the outputs."
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log every reconciliation decision."
    )
    return vars(parser.parse_args(argv))


def save_statistics(output_config: dict, reports, filename: str) -> str:
    import pandas as pd

    directory = output_config.get("directory", "./output/")
    os.makedirs(directory, exist_ok=True, mode=0o755)
    location = os.path.join(directory, f"{filename}_ticks.csv")
    df = pd.DataFrame([report.to_dict() for report in reports])
    df.to_csv(location, index=False)
    logger.info("Tick statistics saved to {}".format(location))
    return location


def run(args: dict):
    from .utils import load_yaml
    from .process import execute_lod_simulation
    from .export import graph_to_dict, leaves_to_mesh_dict, save_graph
    from .validate_graph import save_graph_debug

    if not os.path.exists(args["config_path"]):
        raise FileNotFoundError(f"Config file {args['config_path']} does not exist.")
    config = load_yaml(args["config_path"])
    if "output" not in config or config["output"] is None:
        config["output"] = {}
    if args.get("outdir"):
        config["output"]["directory"] = args["outdir"]
    output_config = config["output"]

    sphere, reports = execute_lod_simulation(config, validate=args.get("validate", False), progress=True)

    filename = output_config.get("filename", "icosphere_lod")
    save_graph(output_config, graph_to_dict(sphere.store), filename)
    if output_config.get("save_mesh", True):
        save_graph(output_config, leaves_to_mesh_dict(sphere.store), filename + "_mesh")
    if output_config.get("save_stats", True):
        save_statistics(output_config, reports, filename)
    if args.get("debug", False):
        directory = output_config.get("directory", "./output/")
        save_graph_debug(filename, sphere.store, os.path.join(directory, filename + "_debug.json"))
    return sphere, reports


def main(argv=None):
    args = argparse_setup(argv)
    level = logging.DEBUG if args["verbose"] else logging.INFO
    logging.basicConfig(level=level)
    run(args)
