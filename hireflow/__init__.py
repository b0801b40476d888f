"""
hireflow – batch résumé scoring and application tracking.

The package is organised around the life of a hiring batch:

1. **resume** – Turn uploaded files or request payloads into immutable
   ``ResumeInput`` values and a shared ``JobDescription``.
2. **score** – A ``ScoringClient`` turns one résumé plus the job text
   into a structured ``AnalysisResult``.  OpenAI and Gemini backed
   clients are provided, with a deterministic keyword client used when
   no API key is configured.
3. **batch** – ``BatchAnalyzer`` fans the résumés out to the scoring
   client with bounded concurrency, tolerates per-résumé failures and
   reports progress on an ordered ``ProgressStream`` that ends with
   exactly one ``complete`` or ``error`` event.
4. **rank** – Sort, filter and summarise the finished results, and
   export them to CSV.
5. **applications** – The application status state machine and a
   ledger that serialises transitions per application.
6. **cli** – Command line entry point wiring the above together.
"""

__version__ = "0.1.0"
