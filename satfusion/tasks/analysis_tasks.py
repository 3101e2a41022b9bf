# satfusion/tasks/analysis_tasks.py
from celery import shared_task
from flask import current_app


@shared_task(name="analysis.simulate", ignore_result=False)
def simulate_analysis(job_id: str):
    """
    Runs one analysis job to its terminal state inside the worker's app context.

    Failures are recorded on the job by the simulator itself; nothing is
    re-raised, so Celery never retries a run.
    """
    simulator = current_app.extensions["satfusion.simulator_factory"]()
    status = simulator.run(job_id)
    return {"job_id": job_id, "status": status}
