"""Generate a synthetic monthly close-price CSV whose log returns follow an ARMA process."""

import argparse
import logging
import os
import sys

import matplotlib.pyplot as plt

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.simulation import simulate_prices  # noqa: E402


def setup_logging() -> None:
    """Configure logging to a file and the console."""
    os.makedirs("results/logs", exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler("results/logs/synthetic_data.log"),
            logging.StreamHandler()
        ]
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a synthetic close-price dataset.")
    parser.add_argument("--name", default="synthetic_close", help="Dataset name (CSV file stem).")
    parser.add_argument("--length", type=int, default=240, help="Number of observations.")
    parser.add_argument("--start-date", default="2004-01-01")
    parser.add_argument("--freq", default="MS", help="pandas frequency string.")
    parser.add_argument("--start-price", type=float, default=100.0)
    parser.add_argument("--drift", type=float, default=0.006, help="Mean log return per period.")
    parser.add_argument("--ar", type=float, nargs="*", default=[0.4], help="AR coefficients of the log returns.")
    parser.add_argument("--ma", type=float, nargs="*", default=[], help="MA coefficients of the log returns.")
    parser.add_argument("--sigma", type=float, default=0.05, help="Innovation standard deviation.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output-dir", default="data")
    parser.add_argument("--plot", action="store_true", help="Also save a plot under results/plots.")
    return parser.parse_args()


def plot_synthetic_dataset(df, dataset_name: str, output_dir: str = "results/plots") -> None:
    """Save a line plot of the generated prices."""
    os.makedirs(output_dir, exist_ok=True)
    plt.figure(figsize=(12, 6))
    plt.plot(df.index, df["Close"], label="Close")
    plt.title(f"Synthetic Dataset: {dataset_name}")
    plt.xlabel("Date")
    plt.ylabel("Price")
    plt.legend()
    plt.grid(True)
    output_path = os.path.join(output_dir, f"{dataset_name}_plot.png")
    plt.savefig(output_path)
    plt.close()
    logging.info(f"Saved plot to {output_path}")


def main() -> None:
    setup_logging()
    args = parse_args()
    prices = simulate_prices(
        n=args.length,
        start_price=args.start_price,
        drift=args.drift,
        ar=args.ar,
        ma=args.ma,
        sigma=args.sigma,
        start_date=args.start_date,
        freq=args.freq,
        seed=args.seed,
    )
    df = prices.round(4).to_frame()
    os.makedirs(args.output_dir, exist_ok=True)
    output_path = os.path.join(args.output_dir, f"{args.name}.csv")
    df.to_csv(output_path)
    logging.info(f"Saved synthetic dataset with {len(df)} rows to {output_path}")
    if args.plot:
        plot_synthetic_dataset(df, args.name)


if __name__ == "__main__":
    main()
