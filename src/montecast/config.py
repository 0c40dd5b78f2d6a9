from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MC_",
    )

    # Estimation window
    duration: int = 180  # historical changes used for mean/std

    # Monte Carlo simulation
    num_sim: int = 200
    days_to_sim: int = 30
    model: str = "additive"  # additive | gbm
    simulation_seed: int | None = None

    # Parallelization
    simulation_executor: str = "sequential"  # sequential | thread | process
    simulation_max_workers: int | None = None  # None = CPU count
    simulation_chunk_size: int = 1000

    # Backtest
    backtest: int = 30  # held-out trading days

    # Goodness of fit
    fit_alpha: float = 0.05

    # Logging
    log_dir: str = "logs"
