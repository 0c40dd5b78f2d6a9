import logging

import click

from montecast.analysis.errors import SimulationError
from montecast.analysis.sim_models import SimModel
from montecast.config import Settings
from montecast.logging_config import setup_logging

logger = logging.getLogger(__name__)

MODEL_CHOICE = click.Choice([m.value for m in SimModel])
EXECUTOR_CHOICE = click.Choice(["sequential", "thread", "process"])


def _simulation_options(settings: Settings, seed: int | None, executor: str | None,
                        workers: int | None) -> dict:
    return {
        "seed": seed if seed is not None else settings.simulation_seed,
        "executor": executor or settings.simulation_executor,
        "max_workers": workers if workers is not None else settings.simulation_max_workers,
        "chunk_size": settings.simulation_chunk_size,
    }


def _echo_summary(summary: dict) -> None:
    click.echo(f"  predicted price : {summary['predicted_price']:.2f}")
    click.echo(f"  predicted change: {summary['predicted_change_pct']:+.2f} %")
    click.echo(
        "  percentiles     : "
        f"p5={summary['p5']:.2f} p25={summary['p25']:.2f} p50={summary['p50']:.2f} "
        f"p75={summary['p75']:.2f} p95={summary['p95']:.2f}"
    )
    click.echo(f"  5% VaR          : {summary['var_5pct_pct']:+.2f} %")
    click.echo(f"  upside prob     : {summary['upside_prob']:.2%}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Montecast - Monte Carlo price forecasting"""
    settings = Settings()
    setup_logging(settings.log_dir)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx.obj = settings


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--duration", "-d", type=int, default=None, help="Historical changes used for mean/std")
@click.option("--num-sim", "-n", type=int, default=None, help="Number of simulated paths")
@click.option("--days", "days_to_sim", type=int, default=None, help="Trading days to project")
@click.option("--model", "-m", type=MODEL_CHOICE, default=None, help="Path model")
@click.option("--seed", type=int, default=None, help="Root seed for reproducible runs")
@click.option("--executor", type=EXECUTOR_CHOICE, default=None, help="Path executor")
@click.option("--workers", type=int, default=None, help="Parallel worker count")
@click.option("--show-paths", is_flag=True, help="Print the mean trajectory per date")
@click.pass_obj
def forecast(settings: Settings, csv_path: str, duration: int | None, num_sim: int | None,
             days_to_sim: int | None, model: str | None, seed: int | None,
             executor: str | None, workers: int | None, show_paths: bool):
    """Forecast the price distribution from a CSV of daily closes."""
    from montecast.analysis.simulation import run_monte_carlo
    from montecast.prices import load_price_csv

    prices = load_price_csv(csv_path)
    try:
        result = run_monte_carlo(
            prices,
            duration=duration if duration is not None else settings.duration,
            num_sim=num_sim if num_sim is not None else settings.num_sim,
            days_to_sim=days_to_sim if days_to_sim is not None else settings.days_to_sim,
            model=model if model is not None else settings.model,
            **_simulation_options(settings, seed, executor, workers),
        )
    except SimulationError as e:
        raise click.ClickException(str(e))

    click.echo(
        f"{result.model.value} forecast, {result.days_to_sim} days from "
        f"{result.stats.last_date.date()} (last close {result.stats.last_close:.2f}):"
    )
    _echo_summary(result.summary)

    if show_paths and result.mean is not None:
        click.echo("")
        for row in result.mean.itertuples(index=False):
            click.echo(f"  {row.date.date()}  {row.close_avg:.2f}")


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--duration", "-d", type=int, default=None, help="Historical changes used for mean/std")
@click.option("--num-sim", "-n", type=int, default=None, help="Number of simulated paths")
@click.option("--days", "days_to_sim", type=int, default=None, help="Trading days to project")
@click.option("--model", "-m", type=MODEL_CHOICE, default=None, help="Path model")
@click.option("--seed", type=int, default=None, help="Root seed for reproducible runs")
@click.option("--executor", type=EXECUTOR_CHOICE, default=None, help="Path executor")
@click.option("--workers", type=int, default=None, help="Parallel worker count")
@click.option("--bins", type=int, default=20, help="Histogram bins to print")
@click.pass_obj
def distribution(settings: Settings, csv_path: str, duration: int | None, num_sim: int | None,
                 days_to_sim: int | None, model: str | None, seed: int | None,
                 executor: str | None, workers: int | None, bins: int):
    """Terminal price distribution (final prices only)."""
    from montecast.analysis.ensemble import histogram
    from montecast.analysis.simulation import run_distribution
    from montecast.prices import load_price_csv

    prices = load_price_csv(csv_path)
    try:
        result = run_distribution(
            prices,
            duration=duration if duration is not None else settings.duration,
            num_sim=num_sim if num_sim is not None else settings.num_sim,
            days_to_sim=days_to_sim if days_to_sim is not None else settings.days_to_sim,
            model=model if model is not None else settings.model,
            **_simulation_options(settings, seed, executor, workers),
        )
    except SimulationError as e:
        raise click.ClickException(str(e))

    click.echo(f"{result.model.value} terminal distribution over {len(result.terminal)} paths:")
    _echo_summary(result.summary)

    counts, edges = histogram(result.terminal, bins=bins)
    click.echo("")
    for count, lo, hi in zip(counts, edges[:-1], edges[1:]):
        click.echo(f"  {lo:10.2f} - {hi:10.2f}  {count}")


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--duration", "-d", type=int, default=None, help="Historical changes used for mean/std")
@click.option("--backtest", "-b", type=int, default=None, help="Held-out trading days")
@click.option("--num-sim", "-n", type=int, default=None, help="Number of simulated paths")
@click.option("--model", "-m", type=MODEL_CHOICE, default=None, help="Path model")
@click.option("--seed", type=int, default=None, help="Root seed for reproducible runs")
@click.pass_obj
def backtest(settings: Settings, csv_path: str, duration: int | None, backtest: int | None,
             num_sim: int | None, model: str | None, seed: int | None):
    """Compare the predicted mean against realized closes."""
    from montecast.analysis.backtest import backtest_errors, run_backtest
    from montecast.prices import load_price_csv

    prices = load_price_csv(csv_path)
    try:
        result = run_backtest(
            prices,
            duration=duration if duration is not None else settings.duration,
            backtest=backtest if backtest is not None else settings.backtest,
            num_sim=num_sim if num_sim is not None else settings.num_sim,
            model=model if model is not None else settings.model,
            **_simulation_options(settings, seed, None, None),
        )
    except SimulationError as e:
        raise click.ClickException(str(e))

    click.echo(f"{'date':<12}{'predicted_mean':>16}{'actual':>12}")
    for row in result.comparison.itertuples(index=False):
        click.echo(f"{str(row.date.date()):<12}{row.predicted_mean:>16.2f}{row.actual:>12.2f}")

    errors = backtest_errors(result.comparison)
    click.echo(
        f"\nMAE {errors['mae']:.2f}, MAPE {errors['mape_pct']:.2f} %, "
        f"final error {errors['final_error_pct']:+.2f} %"
    )


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--duration", "-d", type=int, default=None, help="Historical changes tested")
@click.option("--alpha", type=float, default=None, help="Significance level")
@click.pass_obj
def fit(settings: Settings, csv_path: str, duration: int | None, alpha: float | None):
    """Kolmogorov-Smirnov normality test of daily log returns."""
    from montecast.analysis.fit import check_normality
    from montecast.analysis.returns import estimate_returns
    from montecast.analysis.sim_models import ReturnKind
    from montecast.prices import load_price_csv

    prices = load_price_csv(csv_path)
    try:
        stats = estimate_returns(
            prices, duration if duration is not None else settings.duration, ReturnKind.LOG
        )
        report = check_normality(stats, alpha if alpha is not None else settings.fit_alpha)
    except SimulationError as e:
        raise click.ClickException(str(e))

    verdict = "consistent with" if report.consistent else "rejects"
    click.echo(f"log returns: mean={stats.mean:.6f} std={stats.std:.6f} over {stats.duration} days")
    click.echo(f"KS statistic {report.statistic:.4f}, p-value {report.p_value:.4f} "
               f"({verdict} normal at alpha={report.alpha})")


if __name__ == "__main__":
    cli()
