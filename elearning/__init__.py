"""
E-Learning Package - DSP (Digital Solutions Platform)

Dieses Paket enthält den Kurs-Verkauf der E-Learning-Plattform:
Kurskatalog, Stripe-Checkout und die Freischaltung gekaufter Kurse.

Features:
- Kurskatalog mit Lektionen und Vorschau-Freigabe
- Kauf über Stripe Checkout mit ausstehenden Kaufdatensätzen
- Idempotente Verarbeitung der Stripe-Webhooks
- Manuelle Freischaltung durch Administratoren

Struktur:
- courses/: Kurse und Lektionen
- purchases/: Kaufdatensätze, Abgleich mit Stripe, API-Endpoints
- management/: Django Management Commands
- tests/: Test-Suite

Author: DSP Development Team
Created: 10.07.2025
Version: 1.0.0
"""
