"""Sales analytics over recent tickets.

The admin dashboard reads the dict returned by ``sales_analytics``. Simple
statistics come from the standard library; the polynomial fit uses numpy,
clustering, PCA and the isolation forest use scikit-learn, and the seasonal
decomposition and ARIMA forecast use statsmodels.
"""
import logging
import statistics
import warnings
from datetime import datetime, timedelta, timezone

import numpy as np
from sklearn.cluster import KMeans
from sklearn.decomposition import PCA
from sklearn.ensemble import IsolationForest
from sqlalchemy.orm import Session
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.seasonal import seasonal_decompose

from buspos.models.ticket import Ticket

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30
TREND_SLOPE_THRESHOLD = 0.1
SMOOTHING_ALPHA = 0.3
ANOMALY_Z = 2
POLY_DEGREE = 2
SEASON_PERIOD = 7
CLUSTERS = 2
# at least this many tickets before clustering, PCA and the isolation forest run
MIN_FEATURE_ROWS = 4
ARIMA_ORDER = (2, 1, 2)
ARIMA_STEPS = 3
ISOLATION_THRESHOLD = 0.6


def predict_next_value(points: list[tuple[float, float]]) -> dict:
    """Least-squares line through (timestamp, value); evaluated one step past the last point."""
    if len(points) < 2:
        return {"predictedValue": 0, "confidence": 0}
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    try:
        slope, intercept = statistics.linear_regression(xs, ys)
    except statistics.StatisticsError:
        # every sale at the same instant
        return {"predictedValue": statistics.fmean(ys), "confidence": 0}
    next_x = max(xs) + (xs[1] - xs[0])
    return {"predictedValue": slope * next_x + intercept, "confidence": 1}


def predict_next_value_polynomial(points: list[tuple[float, float]], degree: int = POLY_DEGREE) -> dict:
    """Degree-2 least-squares fit through (timestamp, value), evaluated one step past the last point."""
    if len(points) < degree + 1 or len({p[0] for p in points}) < degree + 1:
        return {"predictedValue": 0, "confidence": 0}
    origin = points[0][0]
    xs = np.array([p[0] - origin for p in points], dtype=float)
    ys = np.array([p[1] for p in points], dtype=float)
    try:
        coeffs = np.polyfit(xs, ys, degree)
    except np.linalg.LinAlgError:
        logger.warning("polynomial fit did not converge over %d points", len(points))
        return {"predictedValue": 0, "confidence": 0}
    next_x = xs.max() + (xs[1] - xs[0])
    return {"predictedValue": float(np.polyval(coeffs, next_x)), "confidence": 1}


def seasonality_strength(values: list[float], period: int = SEASON_PERIOD) -> float:
    """Share of the variance explained by the additive seasonal component; needs two full periods."""
    if len(values) < period * 2:
        return 0
    series = np.array(values, dtype=float)
    total = series.var()
    if total == 0:
        return 0
    seasonal = seasonal_decompose(series, model="additive", period=period).seasonal
    return float(seasonal.var() / total)


def cluster_data(features: list[list[float]], k: int = CLUSTERS) -> dict | None:
    if len(features) < k:
        return None
    model = KMeans(n_clusters=k, n_init=10, random_state=0).fit(np.array(features, dtype=float))
    return {
        "clusters": model.labels_.tolist(),
        "centroids": model.cluster_centers_.tolist(),
        "iterations": int(model.n_iter_),
    }


def pca_analysis(features: list[list[float]]) -> dict:
    empty = {"explainedVariance": [], "components": []}
    if len(features) < 2:
        return empty
    data = np.array(features, dtype=float)
    if not np.ptp(data, axis=0).any():
        # every point identical
        return empty
    model = PCA().fit(data)
    return {
        "explainedVariance": model.explained_variance_ratio_.tolist(),
        "components": model.components_.tolist(),
    }


def isolation_forest(features: list[list[float]], n_trees: int = 100) -> list[dict]:
    """Isolation-forest anomaly score per point, in (0, 1]; above 0.6 counts as an anomaly."""
    if len(features) < 2:
        return []
    data = np.array(features, dtype=float)
    forest = IsolationForest(n_estimators=n_trees, random_state=0).fit(data)
    # score_samples is the negated score of the original paper
    scores = -forest.score_samples(data)
    return [
        {"point": point, "score": float(score), "isAnomaly": bool(score > ISOLATION_THRESHOLD)}
        for point, score in zip(features, scores)
    ]


def forecast_arima(values: list[float], order: tuple[int, int, int] = ARIMA_ORDER, steps: int = ARIMA_STEPS) -> dict:
    if len(values) < 5:
        return {"forecast": [], "error": "Not enough data"}
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            fitted = ARIMA(np.array(values, dtype=float), order=order).fit()
        forecast = fitted.forecast(steps)
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.warning("ARIMA%s fit failed over %d prices: %s", order, len(values), e)
        return {"forecast": [], "error": str(e)}
    return {"forecast": [float(v) for v in forecast], "error": None}


def peak_hours(hourly: list[int], top: int = 5) -> list[dict]:
    mean = statistics.fmean(hourly)
    std = statistics.pstdev(hourly)
    scored = []
    for hour, value in enumerate(hourly):
        z = (value - mean) / std if std else 0.0
        scored.append({"hour": hour, "score": max(0.0, min(1.0, (z + 2) / 4))})
    scored.sort(key=lambda s: s["score"], reverse=True)
    return scored[:top]


def peak_days(daily: list[int], top: int = 3) -> list[dict]:
    highest = max(daily) if daily else 0
    scored = [{"day": day, "score": (value / highest) if highest else 0} for day, value in enumerate(daily)]
    scored.sort(key=lambda s: s["score"], reverse=True)
    return scored[:top]


def exponential_smoothing(values: list[float], alpha: float = SMOOTHING_ALPHA) -> int:
    if not values:
        return 0
    forecast = values[0]
    for v in values[1:]:
        forecast = alpha * v + (1 - alpha) * forecast
    return max(0, round(forecast))


def calculate_trend(values: list[float]) -> dict:
    if len(values) < 2:
        return {"direction": "stable", "strength": 0}
    xs = list(range(len(values)))
    slope, _ = statistics.linear_regression(xs, values)
    try:
        r_squared = statistics.correlation(xs, values) ** 2
    except statistics.StatisticsError:
        # constant prices
        r_squared = 0.0
    if slope > TREND_SLOPE_THRESHOLD:
        direction = "up"
    elif slope < -TREND_SLOPE_THRESHOLD:
        direction = "down"
    else:
        direction = "stable"
    return {"direction": direction, "strength": min(1.0, abs(slope) * r_squared)}


def moving_average(values: list[float], window: int = 3) -> list[float]:
    if len(values) < window:
        return []
    return [statistics.fmean(values[i:i + window]) for i in range(len(values) - window + 1)]


def detect_anomalies(values: list[float], threshold: float = ANOMALY_Z) -> list[dict]:
    if len(values) < 2:
        return []
    mean = statistics.fmean(values)
    std = statistics.pstdev(values)
    out = []
    for idx, v in enumerate(values):
        z = (v - mean) / std if std else 0.0
        if abs(z) > threshold:
            out.append({"index": idx, "value": v, "z": z, "isAnomaly": True})
    return out


def sales_analytics(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=WINDOW_DAYS)
    tickets = (
        db.query(Ticket.created_at, Ticket.price)
        .filter(Ticket.created_at >= since)
        .order_by(Ticket.created_at.asc())
        .all()
    )

    hourly = [0] * 24
    daily = [0] * 7
    prices = []
    points = []
    for created_at, price in tickets:
        hourly[created_at.hour] += 1
        # Sunday = 0
        daily[(created_at.weekday() + 1) % 7] += 1
        prices.append(price)
        points.append((created_at.timestamp() * 1000, price))

    total = sum(prices)
    next_value = predict_next_value(points)
    poly = predict_next_value_polynomial(points)
    clusters = pca = forest = None
    if len(tickets) >= MIN_FEATURE_ROWS:
        features = [[float(price), created_at.hour] for created_at, price in tickets]
        clusters = cluster_data(features)
        pca = pca_analysis(features)
        forest = isolation_forest(features)
    logger.debug("analytics over %d tickets since %s", len(prices), since.isoformat())

    return {
        "salesTrend": {
            "predictedValue": next_value["predictedValue"],
            "confidence": next_value["confidence"],
            "trend": calculate_trend(prices),
        },
        "salesTrendPolynomial": {"predictedValue": poly["predictedValue"], "confidence": poly["confidence"]},
        "peakHours": peak_hours(hourly),
        "peakDays": peak_days(daily),
        "demandPrediction": {"value": exponential_smoothing(prices), "confidence": next_value["confidence"]},
        "revenue": {"total": total, "average": (total / len(prices)) if prices else 0},
        "hourlyDistribution": hourly,
        "dailyDistribution": daily,
        "anomalies": detect_anomalies(prices),
        "movingAverage": moving_average(prices),
        "seasonalityStrength": seasonality_strength(prices),
        "clusters": clusters,
        "pca": pca,
        "isolationForest": forest,
        "arimaForecast": forecast_arima(prices),
    }
