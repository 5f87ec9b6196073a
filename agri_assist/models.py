from typing import List, Optional
from pydantic import BaseModel


class PestAnalysisResult(BaseModel):
    pest_or_disease_name: str
    description: str
    preventive_measures: List[str]
    treatment_steps: List[str]


class SoilAnalysisResult(BaseModel):
    soil_type: str
    ph_level_estimate: str
    nutrient_deficiencies: List[str]
    recommendations: List[str]


class SummarySource(BaseModel):
    """A web citation attached to a grounded answer"""
    url: str
    title: Optional[str] = ""


class DailySummaryResult(BaseModel):
    text: str
    sources: List[SummarySource] = []  # provider order


class PestAnalysisResponse(BaseModel):
    analysis: Optional[PestAnalysisResult] = None
    audio_base64: Optional[str] = None


class SoilAnalysisResponse(BaseModel):
    analysis: Optional[SoilAnalysisResult] = None
    audio_base64: Optional[str] = None


class DailySummaryResponse(BaseModel):
    summary: Optional[DailySummaryResult] = None
    audio_base64: Optional[str] = None


class AuthenticatedUser(BaseModel):
    display_name: str
    email: str
