import math
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from backend.app.solver import evaluate_expression, solve_equation_system, solve_single_equation
from eqsolver import ConvergenceError, EquationSolverError
from eqsolver.logger import enable_console_logging

logger = enable_console_logging()

app = FastAPI(title="EqSolver API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class EvaluateRequest(BaseModel):
    expression: str
    variables: dict[str, float] = Field(default_factory=dict)


class EvaluateResponse(BaseModel):
    expression: str
    result: float
    final_answer: str


class EquationRequest(BaseModel):
    equation: str
    tolerance: Optional[float] = Field(default=None, gt=0)
    max_iterations: Optional[int] = Field(default=None, ge=0)


class SolveResponse(BaseModel):
    equation: str
    variable: str
    value: float
    final_answer: str


class GuessInfo(BaseModel):
    guess: float
    lower: Optional[float] = None
    upper: Optional[float] = None


class SystemRequest(BaseModel):
    equations: list[str]
    guesses: dict[str, GuessInfo] = Field(default_factory=dict)
    tolerance: Optional[float] = Field(default=None, gt=0)
    max_iterations: Optional[int] = Field(default=None, ge=0)


class SystemResponse(BaseModel):
    equations: list[str]
    solution: dict[str, float]
    final_answer: str


def _run(func, *args):
    try:
        return func(*args)
    except ConvergenceError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(e),
                "reason": e.reason.name,
                "last_guess": {
                    name: value if math.isfinite(value) else None
                    for name, value in (e.last_guess or {}).items()
                },
            },
        )
    except (EquationSolverError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Unexpected solver failure", exc_info=e)
        raise HTTPException(status_code=500, detail=f"Solver error: {str(e)}")


@app.post("/api/evaluate", response_model=EvaluateResponse)
def evaluate(req: EvaluateRequest):
    expression = req.expression.strip()
    if not expression:
        raise HTTPException(status_code=400, detail="Expression cannot be empty.")
    return _run(evaluate_expression, expression, req.variables)


@app.post("/api/solve", response_model=SolveResponse)
def solve(req: EquationRequest):
    equation = req.equation.strip()
    if not equation:
        raise HTTPException(status_code=400, detail="Equation cannot be empty.")
    return _run(solve_single_equation, equation, req.tolerance, req.max_iterations)


@app.post("/api/system", response_model=SystemResponse)
def solve_system(req: SystemRequest):
    equations = [eq.strip() for eq in req.equations if eq.strip()]
    if not equations:
        raise HTTPException(status_code=400, detail="At least one equation is required.")
    guesses = {name: info.model_dump() for name, info in req.guesses.items()}
    return _run(solve_equation_system, equations, guesses, req.tolerance, req.max_iterations)
