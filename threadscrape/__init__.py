"""threadscrape — discussion-page scraper with reCAPTCHA resolution."""
