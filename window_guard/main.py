from window_guard.core.app_factory import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Single worker: the limiter's counters live in this process only.
    uvicorn.run(app, host="0.0.0.0", port=8000, workers=1, log_config=None)
