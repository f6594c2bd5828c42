"""
Watershed EJ Index - PCA Composites
First-principal-component scores over the indicator set

Rules:
- Fit once per run on complete-case rows only
- Rows with any missing input get a missing score (no imputation)
- The fitted model is an immutable value handed to every consumer
- Sign is fixed so the score correlates non-negatively with index_raw
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from config.settings import get_settings
from src.utils.errors import PCAFitError
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ZERO_VARIANCE_RTOL = 1e-12


@dataclass(frozen=True)
class PCAModel:
    """
    Fitted first principal component.

    score = sum(((x - center) / scale) * loadings)
    """
    columns: Tuple[str, ...]
    center: Tuple[float, ...]
    scale: Tuple[float, ...]
    loadings: Tuple[float, ...]
    explained_variance_ratio: float
    n_obs: int
    standardize: bool

    def project(self, df: pd.DataFrame) -> pd.Series:
        """
        Score rows with this model.

        Args:
            df: Table holding every column in self.columns

        Returns:
            Scores, missing for rows with any missing input
        """
        values = df[list(self.columns)].apply(pd.to_numeric, errors="coerce").astype(float)
        complete = values.notna().all(axis=1)

        x = values.loc[complete].to_numpy(dtype=float)
        z = (x - np.asarray(self.center)) / np.asarray(self.scale)

        scores = pd.Series(np.nan, index=df.index, dtype=float)
        scores[complete] = z @ np.asarray(self.loadings)
        return scores

    def reflected(self) -> "PCAModel":
        """Same axis with opposite orientation"""
        return replace(self, loadings=tuple(-v for v in self.loadings))


def complete_cases(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Rows of df[columns] with no missing values, as floats"""
    values = df[list(columns)].apply(pd.to_numeric, errors="coerce").astype(float)
    return values.dropna()


def fit_pca_model(
    df: pd.DataFrame, columns: Sequence[str], standardize: Optional[bool] = None
) -> PCAModel:
    """
    Fit the first principal component over complete-case rows.

    Args:
        df: Table holding the input columns
        columns: Input columns
        standardize: Z-score inputs before fitting (default: settings.PCA_STANDARDIZE)

    Returns:
        Fitted PCAModel

    Raises:
        PCAFitError: Fewer than two complete-case rows, or an input with zero variance
    """
    standardize = settings.PCA_STANDARDIZE if standardize is None else standardize

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise PCAFitError(f"PCA input columns not found: {missing}")

    complete = complete_cases(df, columns)

    if len(complete) < 2:
        raise PCAFitError(
            f"PCA needs at least 2 complete-case rows to estimate covariance, found {len(complete)}"
        )

    spread = complete.std(ddof=1)
    # Relative tolerance absorbs float noise such as 0.1 + 0.2 vs 0.3
    tolerance = ZERO_VARIANCE_RTOL * complete.mean().abs().clip(lower=1.0)
    constant = spread.index[spread <= tolerance].tolist()
    if constant:
        raise PCAFitError(f"PCA inputs have zero variance over complete cases: {constant}")

    x = complete.to_numpy(dtype=float)

    if standardize:
        scaler = StandardScaler().fit(x)
        center = scaler.mean_
        scale = scaler.scale_
    else:
        center = x.mean(axis=0)
        scale = np.ones(x.shape[1])

    pca = PCA(n_components=1).fit((x - center) / scale)

    model = PCAModel(
        columns=tuple(columns),
        center=tuple(float(v) for v in center),
        scale=tuple(float(v) for v in scale),
        loadings=tuple(float(v) for v in pca.components_[0]),
        explained_variance_ratio=float(pca.explained_variance_ratio_[0]),
        n_obs=len(complete),
        standardize=standardize,
    )

    logger.info(
        f"Fitted PCA on {model.n_obs} complete cases over {len(columns)} inputs: "
        f"explained_variance={model.explained_variance_ratio:.3f}"
    )

    return model


def align_sign(
    model: PCAModel,
    df: pd.DataFrame,
    reference: pd.Series,
    min_abs_correlation: Optional[float] = None,
) -> Tuple[PCAModel, float]:
    """
    Orient the component so its scores correlate non-negatively with a reference.

    Args:
        model: Fitted model
        df: Rows to score
        reference: Reference composite aligned with df (index_raw)
        min_abs_correlation: Below this |r| the sign is reported as indeterminate
            (default: settings.PCA_SIGN_MIN_ABS_CORRELATION)

    Returns:
        Tuple of (oriented model, Pearson r after orientation)
    """
    if min_abs_correlation is None:
        min_abs_correlation = settings.PCA_SIGN_MIN_ABS_CORRELATION

    scores = model.project(df)
    paired = pd.concat([scores, pd.to_numeric(reference, errors="coerce")], axis=1).dropna()

    if len(paired) < 2:
        logger.warning(
            f"PCA sign indeterminate: only {len(paired)} rows have both score and reference"
        )
        return model, float("nan")

    corr = paired.iloc[:, 0].corr(paired.iloc[:, 1])

    if pd.isna(corr):
        logger.warning("PCA sign indeterminate: correlation with reference is undefined")
        return model, float("nan")

    if corr < 0:
        logger.info(f"Reflecting PCA axis (correlation with reference was {corr:.3f})")
        model = model.reflected()
        corr = -corr

    if corr < min_abs_correlation:
        logger.warning(
            f"PCA sign indeterminate: |r|={corr:.3f} with reference is below "
            f"{min_abs_correlation}"
        )

    return model, float(corr)


def compute_pca_index(
    df: pd.DataFrame,
    columns: Sequence[str],
    reference: pd.Series,
    standardize: Optional[bool] = None,
) -> Tuple[pd.Series, PCAModel]:
    """
    Fit, orient and apply a PCA composite.

    Args:
        df: Table holding the input columns
        columns: Input columns
        reference: Composite the score must correlate positively with
        standardize: Z-score inputs before fitting

    Returns:
        Tuple of (scores, oriented model)
    """
    model = fit_pca_model(df, columns, standardize=standardize)
    model, corr = align_sign(model, df, reference)

    scores = model.project(df)

    logger.info(
        f"PCA composite: scored={scores.notna().sum()}, missing={scores.isna().sum()}, "
        f"r_reference={corr:.3f}"
    )

    return scores, model


def loadings_table(models: Dict[str, PCAModel]) -> pd.DataFrame:
    """
    Long-format report of fitted loadings.

    Args:
        models: Dict of index name -> fitted model

    Returns:
        DataFrame with index, input_column, loading, center, scale,
        explained_variance_ratio, n_obs
    """
    rows: List[dict] = []

    for index_name, model in models.items():
        for column, loading, center, scale in zip(
            model.columns, model.loadings, model.center, model.scale
        ):
            rows.append(
                {
                    "index": index_name,
                    "input_column": column,
                    "loading": loading,
                    "center": center,
                    "scale": scale,
                    "explained_variance_ratio": model.explained_variance_ratio,
                    "n_obs": model.n_obs,
                }
            )

    return pd.DataFrame(
        rows,
        columns=[
            "index",
            "input_column",
            "loading",
            "center",
            "scale",
            "explained_variance_ratio",
            "n_obs",
        ],
    )
